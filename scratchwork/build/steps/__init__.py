"""Build pipeline steps."""

from .assets import CopyStaticStep, CopyToDistStep
from .bundle import ClientBundleStep, ServerBundleStep
from .conflicts import CheckConflictsStep
from .css import TailwindStep
from .dependencies import DependenciesStep
from .entries import CreateEntriesStep
from .frontmatter import InjectFrontmatterStep
from .html import GenerateHtmlStep
from .reconcile import ReconcileStep
from .render import RenderServerStep
from .reset import ResetStep

__all__ = [
    "CheckConflictsStep",
    "ClientBundleStep",
    "CopyStaticStep",
    "CopyToDistStep",
    "CreateEntriesStep",
    "DependenciesStep",
    "GenerateHtmlStep",
    "InjectFrontmatterStep",
    "ReconcileStep",
    "RenderServerStep",
    "ResetStep",
    "ServerBundleStep",
    "TailwindStep",
]
