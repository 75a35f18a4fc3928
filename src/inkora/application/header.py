"""Site header state: logo link, search box, and the profile menu."""

from __future__ import annotations

from dataclasses import dataclass

from inkora.application.navigation import HOME_PATH, PROFILE_PATH, WRITE_PATH

SEARCH_PLACEHOLDER = "Stories, writers, tags..."
MOBILE_SEARCH_PLACEHOLDER = "Search..."
SIGN_OUT_PATH = "/auth/logout"


@dataclass(frozen=True)
class MenuItem:
    label: str
    path: str
    emphasis: bool = False
    destructive: bool = False
    separator_before: bool = False


MENU_ITEMS: tuple[MenuItem, ...] = (
    MenuItem(label="My profile", path=PROFILE_PATH),
    MenuItem(label="Write", path=WRITE_PATH, emphasis=True),
    MenuItem(label="Settings", path="/settings", separator_before=True),
    MenuItem(label="Notifications", path="/notifications"),
    MenuItem(label="Help", path="/help"),
    MenuItem(label="Sign out", path=SIGN_OUT_PATH, destructive=True, separator_before=True),
)


@dataclass
class HeaderState:
    """Local search text; it is echoed back but never issued as a query."""

    search_query: str = ""
    home_path: str = HOME_PATH

    def update_search(self, text: str | None) -> None:
        self.search_query = (text or "")[:200]

    @property
    def menu(self) -> tuple[MenuItem, ...]:
        return MENU_ITEMS
