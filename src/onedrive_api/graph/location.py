"""Drive and item addressing, and their encoding into Graph URL paths."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

from onedrive_api.graph.models import DriveId, ItemId

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

# Characters OneDrive rejects in file and folder names.
INVALID_NAME_CHARS = '"*:<>?/\\|'

# Characters left unescaped inside a URL path segment.
_SEGMENT_SAFE = "!$&'()*+,;=:@"


class DriveKind(Enum):
    """How a DriveLocation names its drive."""

    ME = "me"
    USER = "user"
    GROUP = "group"
    SITE = "site"
    ID = "id"


class ItemKind(Enum):
    """How an ItemLocation names its item."""

    PATH = "path"
    ITEM_ID = "item_id"
    CHILD_OF_ID = "child_of_id"


@dataclass(frozen=True)
class FileName:
    """A name accepted by OneDrive for a file or folder.

    Only obtainable through ``FileName.new``.
    """

    value: str

    @staticmethod
    def new(name: str) -> FileName | None:
        """Validate a file or folder name.

        Args:
            name: Candidate name.

        Returns:
            The wrapped name, or None if empty or containing any of ``"*:<>?/\\|``.
        """
        if not name or any(c in INVALID_NAME_CHARS for c in name):
            return None
        return FileName(name)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DriveLocation:
    """Which drive a request targets.

    ``id`` is set for every kind except ``ME``.
    """

    kind: DriveKind
    id: str | None = None

    def __post_init__(self) -> None:
        if (self.kind is DriveKind.ME) != (self.id is None):
            raise ValueError(f"Drive id does not match kind {self.kind.name}")

    @classmethod
    def me(cls) -> DriveLocation:
        """The signed-in user's OneDrive."""
        return cls(DriveKind.ME)

    @classmethod
    def from_user(cls, id_or_principal_name: str) -> DriveLocation:
        """The OneDrive of a user, by object id or user principal name."""
        return cls(DriveKind.USER, id_or_principal_name)

    @classmethod
    def from_group(cls, group_id: str) -> DriveLocation:
        """The document library associated with a group."""
        return cls(DriveKind.GROUP, group_id)

    @classmethod
    def from_site(cls, site_id: str) -> DriveLocation:
        """The document library of a site."""
        return cls(DriveKind.SITE, site_id)

    @classmethod
    def from_id(cls, drive_id: DriveId) -> DriveLocation:
        """A drive addressed directly by its id."""
        return cls(DriveKind.ID, drive_id.value)

    def segments(self) -> list[str]:
        """Raw (unescaped) URL path segments addressing this drive."""
        if self.kind is DriveKind.ME:
            return ["me", "drive"]
        if self.kind is DriveKind.USER:
            return ["users", str(self.id), "drive"]
        if self.kind is DriveKind.GROUP:
            return ["groups", str(self.id), "drive"]
        if self.kind is DriveKind.SITE:
            return ["sites", str(self.id), "drive"]
        return ["drives", str(self.id)]


@dataclass(frozen=True)
class ItemLocation:
    """Which item inside a drive a request targets.

    Path and id addressing are exclusive: a location holds exactly one.

    Raises:
        ValueError: If the set fields do not match ``kind``.
    """

    kind: ItemKind
    path: str | None = None
    item_id: str | None = None
    child_name: str | None = None

    def __post_init__(self) -> None:
        if self.kind is ItemKind.PATH:
            valid = self.path is not None and self.item_id is None and self.child_name is None
        elif self.kind is ItemKind.ITEM_ID:
            valid = self.path is None and self.item_id is not None and self.child_name is None
        else:
            valid = self.path is None and self.item_id is not None and self.child_name is not None
        if not valid:
            raise ValueError(f"Item location fields do not match kind {self.kind.name}")

    @classmethod
    def root(cls) -> ItemLocation:
        """The root folder of the drive."""
        return cls(ItemKind.PATH, path="/")

    @classmethod
    def from_path(cls, path: str) -> ItemLocation | None:
        """Address an item by a ``/``-rooted absolute path.

        The trailing ``/`` is optional. Windows-reserved names such as
        ``CON`` pass the check.

        Args:
            path: Absolute path inside the drive.

        Returns:
            The location, or None if the path is not absolute or any segment
            is empty or not a valid FileName.
        """
        if path == "/":
            return cls.root()
        if not path.startswith("/"):
            return None
        components = path[1:]
        if components.endswith("/"):
            components = components[:-1]
        if not all(FileName.new(comp) is not None for comp in components.split("/")):
            return None
        return cls(ItemKind.PATH, path=path)

    @classmethod
    def from_id(cls, item_id: ItemId) -> ItemLocation:
        """Address an item by its id."""
        return cls(ItemKind.ITEM_ID, item_id=item_id.value)

    @classmethod
    def child_of_id(cls, parent_id: ItemId, child_name: FileName) -> ItemLocation:
        """Address an item by name inside the folder with id ``parent_id``.

        The child does not need to exist yet.
        """
        return cls(ItemKind.CHILD_OF_ID, item_id=parent_id.value, child_name=child_name.value)

    def segments(self) -> list[str]:
        """Raw (unescaped) URL path segments addressing this item."""
        if self.kind is ItemKind.PATH:
            if self.path == "/":
                return ["root"]
            return [f"root:{self.path}:"]
        if self.kind is ItemKind.ITEM_ID:
            return ["items", str(self.item_id)]
        return ["items", str(self.item_id), "children", str(self.child_name)]


def encode_segment(segment: str) -> str:
    """Percent-encode one URL path segment (``/`` included)."""
    return quote(segment, safe=_SEGMENT_SAFE)


def _encode(components: tuple[DriveLocation | ItemLocation | str, ...]) -> str:
    raw: list[str] = []
    for comp in components:
        if isinstance(comp, str):
            raw.append(comp)
        else:
            raw.extend(comp.segments())
    return "/".join(encode_segment(s) for s in raw)


def api_url(*components: DriveLocation | ItemLocation | str) -> str:
    """Build an absolute Graph URL from locations and literal segments.

    Example:
        ``api_url(DriveLocation.me(), ItemLocation.root(), "children")``
        gives ``https://graph.microsoft.com/v1.0/me/drive/root/children``.
    """
    return f"{GRAPH_BASE_URL}/{_encode(components)}"


def api_path(item: ItemLocation) -> str:
    """Build the drive-relative path of an item, for use inside JSON bodies.

    This is the ``parentReference.path`` form, e.g. ``/drive/root:%2Fa:``
    or ``/drive/items/{id}``. It shares its encoding with ``api_url``.
    """
    return "/" + _encode(("drive", item))
