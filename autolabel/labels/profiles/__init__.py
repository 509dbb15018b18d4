"""Transform profiles and the default registry."""

from autolabel.labels.profiles.base import (
    LabelProfile,
    NormalizedArtifact,
    ProcessingContext,
    ProfileRegistry,
)
from autolabel.labels.profiles.carrier import (
    CarrierCropProfile,
    VintedDpdProfile,
    VintedSidewaysProfile,
)
from autolabel.labels.profiles.generic import GenericProfile
from autolabel.labels.rendering import RenderChain, get_render_chain


def build_default_registry(render_chain: RenderChain | None = None) -> ProfileRegistry:
    """Build the registry used by the processor.

    Carrier profiles are tried before the generic fit-and-center fallback;
    DPD goes first because the sideways profile takes any Vinted carrier.

    Args:
        render_chain: Rasterizer for PDF input. Defaults to the configured chain.

    Returns:
        ProfileRegistry: Registry with all built-in profiles.
    """
    chain = render_chain or get_render_chain()
    registry = ProfileRegistry(fallback=GenericProfile())
    registry.register(VintedDpdProfile(chain))
    registry.register(VintedSidewaysProfile(chain))
    return registry


__all__ = [
    "CarrierCropProfile",
    "GenericProfile",
    "LabelProfile",
    "NormalizedArtifact",
    "ProcessingContext",
    "ProfileRegistry",
    "VintedDpdProfile",
    "VintedSidewaysProfile",
    "build_default_registry",
]
