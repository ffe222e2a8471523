"""Interactive issue browser."""

from sonardash.tui.browser import BranchPicker, IssueBrowserApp, run_browser
from sonardash.tui.session import BrowserSession

__all__ = ["BranchPicker", "BrowserSession", "IssueBrowserApp", "run_browser"]
