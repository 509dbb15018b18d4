"""Transform profile interface and registry.

A profile pairs a detection predicate with a geometric transform that turns a
source label into a content-area artifact. The registry tries profiles in
registration order and always ends with a fallback profile that matches
everything.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingContext:
    """Hints the caller knows about a label's origin.

    Attributes:
        carrier: Known shipping company (e.g. "DHL", "DPD").
        platform: Known marketplace (e.g. "Vinted").
        sale_id: Owning sale, used in file names and logs.
    """

    carrier: str | None = None
    platform: str | None = None
    sale_id: str | None = None


@dataclass
class NormalizedArtifact:
    """Intermediate result of a profile transform.

    Attributes:
        output_path: Content-area PDF or PNG written by the profile.
        width_mm: Physical label width (the 100mm target).
        height_mm: Physical label height (the 150mm target).
        profile_id: Profile that produced the artifact.
        detected_carrier: Carrier read from the document while processing.
    """

    output_path: Path
    width_mm: float
    height_mm: float
    profile_id: str
    detected_carrier: str | None = None


@runtime_checkable
class LabelProfile(Protocol):
    """Protocol that every transform profile satisfies."""

    id: str
    name: str

    def detect(self, source: Path, context: ProcessingContext) -> bool:
        """Check whether this profile applies to a source file.

        Profiles look at the context before opening the file.

        Args:
            source: Label file (PDF or image).
            context: Caller-supplied hints.

        Returns:
            bool: True if this profile should process the file.
        """
        ...

    def process(
        self, source: Path, context: ProcessingContext, work_dir: Path
    ) -> NormalizedArtifact:
        """Transform a source label into a content-area artifact.

        Args:
            source: Label file (PDF or image).
            context: Caller-supplied hints.
            work_dir: Directory for the output and any intermediate files.

        Returns:
            NormalizedArtifact: Output file and physical size.

        Raises:
            TransformFailure: If the source cannot be transformed.
            RenderingUnavailable: If a PDF could not be rasterized.
        """
        ...


class ProfileRegistry:
    """Ordered collection of profiles ending with a fallback.

    The fallback is fixed at construction and always tried last, so
    classification can never come back empty.
    """

    def __init__(self, fallback: LabelProfile):
        """Initialize the registry.

        Args:
            fallback: Profile used when no other profile matches.
        """
        self._profiles: list[LabelProfile] = []
        self._fallback = fallback

    @property
    def fallback(self) -> LabelProfile:
        return self._fallback

    @property
    def profiles(self) -> list[LabelProfile]:
        """All profiles in detection order, fallback last."""
        return [*self._profiles, self._fallback]

    def register(self, profile: LabelProfile) -> None:
        """Register a profile ahead of the fallback.

        Args:
            profile: Profile to add. Detection order follows registration order.

        Raises:
            ValueError: If a profile with the same ID is already registered.
        """
        if profile.id in self.ids():
            raise ValueError(f"Profile already registered: {profile.id}")
        self._profiles.append(profile)
        logger.debug(f"Registered profile: {profile.id}")

    def ids(self) -> list[str]:
        return [p.id for p in self.profiles]

    def get(self, profile_id: str) -> LabelProfile | None:
        """Get a profile by ID."""
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None

    def detect_profile(self, source: Path, context: ProcessingContext | None = None) -> str:
        """Pick the profile for a source file.

        An exception inside a profile's ``detect`` counts as "no match".

        Args:
            source: Label file.
            context: Caller-supplied hints.

        Returns:
            str: ID of the first matching profile (the fallback if none match).
        """
        context = context or ProcessingContext()
        for profile in self._profiles:
            try:
                if profile.detect(source, context):
                    logger.info(f"Detected profile {profile.id} for {Path(source).name}")
                    return profile.id
            except Exception as e:
                logger.warning(f"Profile {profile.id} detection failed for {Path(source).name}: {e}")

        logger.info(f"Using {self._fallback.id} profile for {Path(source).name}")
        return self._fallback.id
