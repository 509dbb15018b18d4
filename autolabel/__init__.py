"""AutoLabel - shipping label normalization and printing.

AutoLabel takes shipping labels from any carrier or marketplace (PDF or image,
any page size), normalizes them to a 100x150mm label at 300 DPI with an
optional metadata footer, and prints them in batches via the local print
system (CUPS or Windows spooler).

Usage:
    autolabel init-db
    autolabel prepare SALE_ID [SALE_ID ...]
    autolabel print LABEL_ID [LABEL_ID ...] --printer Zebra_GK420d
    autolabel job JOB_ID
"""

__version__ = "0.1.0"
