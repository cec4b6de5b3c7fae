import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Type, Union
from urllib.parse import unquote, urlsplit

from rules.errors import (
    InvalidFolderError,
    InvalidRecipientError,
    InvalidScoreError,
    MissingArgumentError,
    UnexpectedArgumentError,
    UnsupportedActionError,
)


FOLDER_SCHEME = "mailbox"
EMAIL_PATTERN = re.compile(
    r"^(?!\.)(?!.*\.\.)[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+(?<!\.)"
    r"@(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+"
    r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$"
)
SCORE_PATTERN = re.compile(r"^\d+")


@dataclass(frozen=True)
class Folder:
    host: str
    port: Optional[int]
    user: str
    names: Tuple[str, ...]

    @property
    def path(self) -> str:
        return "/".join(self.names)

    def __str__(self) -> str:
        return " / ".join(self.names)

    @classmethod
    def parse(cls, value: Optional[str]) -> "Folder":
        """Parse a ``mailbox://user@host[:port]/path`` folder locator."""
        if not value:
            raise MissingArgumentError("Missing folder specification")
        try:
            parts = urlsplit(value)
            port = parts.port
        except ValueError:
            raise InvalidFolderError(f"Invalid folder specification: {value}")

        if parts.scheme != FOLDER_SCHEME:
            raise InvalidFolderError(f"Unsupported folder scheme: {parts.scheme}")
        if parts.password:
            raise InvalidFolderError(f"Folder path with password: {value}")
        if parts.query:
            raise InvalidFolderError(f"Folder path with querystring: {value}")
        if parts.fragment:
            raise InvalidFolderError(f"Folder path with fragment: {value}")
        if not parts.path.startswith("/"):
            raise InvalidFolderError(f"Unsupported folder path: {parts.path}")

        names = tuple(unquote(chunk) for chunk in parts.path.strip("/").split("/"))
        return cls(
            host=parts.hostname or "",
            port=port,
            user=unquote(parts.username or ""),
            names=names,
        )


def _require_value(value: Optional[str], message: str) -> str:
    if value is None or value == "":
        raise MissingArgumentError(message)
    return value


def _forbid_value(value: Optional[str], action: str):
    if value is not None:
        raise UnexpectedArgumentError(f"Unexpected argument for action {action}")


@dataclass(frozen=True)
class AddTag:
    tag: str

    def __str__(self) -> str:
        return f'Add tag "{self.tag}"'

    @classmethod
    def create(cls, value: Optional[str]) -> "AddTag":
        return cls(_require_value(value, "Missing tag"))


@dataclass(frozen=True)
class CopyToFolder:
    folder: Folder

    def __str__(self) -> str:
        return f'Copy to folder "{self.folder}"'

    @classmethod
    def create(cls, value: Optional[str]) -> "CopyToFolder":
        return cls(Folder.parse(value))


@dataclass(frozen=True)
class MoveToFolder:
    folder: Folder

    def __str__(self) -> str:
        return f'Move to folder "{self.folder}"'

    @classmethod
    def create(cls, value: Optional[str]) -> "MoveToFolder":
        return cls(Folder.parse(value))


@dataclass(frozen=True)
class Delete:
    def __str__(self) -> str:
        return "Delete message"

    @classmethod
    def create(cls, value: Optional[str]) -> "Delete":
        _forbid_value(value, "Delete")
        return cls()


@dataclass(frozen=True)
class Forward:
    recipient: str

    def __str__(self) -> str:
        return f"Send a copy to {self.recipient}"

    @classmethod
    def create(cls, value: Optional[str]) -> "Forward":
        recipient = _require_value(value, "Missing recipient specification")
        if not EMAIL_PATTERN.match(recipient):
            raise InvalidRecipientError(f"Invalid email recipient: {recipient}")
        return cls(recipient)


@dataclass(frozen=True)
class JunkScore:
    score: int

    def __str__(self) -> str:
        return f"Set junk score to {self.score}"

    @classmethod
    def create(cls, value: Optional[str]) -> "JunkScore":
        value = _require_value(value, "Missing score in JunkScore action")
        match = SCORE_PATTERN.match(value)
        if not match:
            raise InvalidScoreError(f"Invalid score '{value}' for JunkScore action")
        return cls(int(match.group(0)))


@dataclass(frozen=True)
class MarkRead:
    def __str__(self) -> str:
        return "Mark message as read"

    @classmethod
    def create(cls, value: Optional[str]) -> "MarkRead":
        _forbid_value(value, "MarkRead")
        return cls()


@dataclass(frozen=True)
class MarkFlagged:
    def __str__(self) -> str:
        return "Mark flagged"

    @classmethod
    def create(cls, value: Optional[str]) -> "MarkFlagged":
        _forbid_value(value, "MarkFlagged")
        return cls()


@dataclass(frozen=True)
class Reply:
    # Opaque reference to the reply template stored by the mail client
    model: str

    def __str__(self) -> str:
        return f'Reply using "{self.model}"'

    @classmethod
    def create(cls, value: Optional[str]) -> "Reply":
        return cls(_require_value(value, "Missing reply model"))


@dataclass(frozen=True)
class StopExecution:
    def __str__(self) -> str:
        return "Stop execution"

    @classmethod
    def create(cls, value: Optional[str]) -> "StopExecution":
        _forbid_value(value, "StopExecution")
        return cls()


Action = Union[
    AddTag,
    CopyToFolder,
    MoveToFolder,
    Delete,
    Forward,
    JunkScore,
    MarkRead,
    MarkFlagged,
    Reply,
    StopExecution,
]

# Keyed by the camelized action name as written in the rules file
ACTION_FACTORIES: Dict[str, Type] = {
    "Addtag": AddTag,
    "CopyToFolder": CopyToFolder,
    "MoveToFolder": MoveToFolder,
    "Delete": Delete,
    "Forward": Forward,
    "Junkscore": JunkScore,
    "MarkRead": MarkRead,
    "MarkFlagged": MarkFlagged,
    "Reply": Reply,
    "StopExecution": StopExecution,
}


def camelize(name: str) -> str:
    return "".join(word.capitalize() for word in name.split())


def create_action(name: str, value: Optional[str] = None) -> Action:
    """Build the action named ``name`` (e.g. "Move to folder") from its raw value."""
    factory = ACTION_FACTORIES.get(camelize(name))
    if factory is None:
        raise UnsupportedActionError(name)
    return factory.create(value)
