"""Build pipeline: orchestrator, steps and toolchain boundaries."""

from .bundler import Bundler, BundleRequest, BundleResult, EsbuildBundler, OutputDescriptor
from .orchestrator import Orchestrator, build, default_stages
from .render import NodeRenderer, Renderer
from .types import BuildState, BuildStep

__all__ = [
    "BuildState",
    "BuildStep",
    "Bundler",
    "BundleRequest",
    "BundleResult",
    "EsbuildBundler",
    "NodeRenderer",
    "Orchestrator",
    "OutputDescriptor",
    "Renderer",
    "build",
    "default_stages",
]
