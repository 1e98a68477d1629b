"""
Request/response value types and boundary validation.

Incoming JSON bodies are parsed into these dataclasses before they reach the
store. Status fields become closed enums here; unrecognized values are
rejected with ValidationError instead of being passed through as strings.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional, TypedDict

from deploy_logger.errors import ValidationError
from deploy_logger.models import DeployStatus, ModuleStatus


class CommitPayload(TypedDict):
    branch: str
    hash: str


class ModulePayload(TypedDict):
    name: str
    version: str
    status: str


def _require_mapping(payload: Any, what: str) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError(f"{what} must be a JSON object")
    return payload


def _required_str(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required and must be a non-empty string")
    return value


def _optional_str(payload: dict, key: str, default: Optional[str] = "") -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def _parse_enum(enum_cls, value: Any, key: str):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{key} is required and must be a string")
    try:
        return enum_cls(value.strip().upper())
    except ValueError:
        valid = ', '.join(member.value for member in enum_cls)
        raise ValidationError(f"{key} must be one of: {valid}. Got: {value}") from None


def parse_deploy_status(value: Any) -> DeployStatus:
    return _parse_enum(DeployStatus, value, "status")


def parse_module_status(value: Any) -> ModuleStatus:
    return _parse_enum(ModuleStatus, value, "status")


def parse_max_deploys(value: Any, default: int) -> int:
    """
    Validate the `max` query parameter of deploy listing.

    None means "use the default". Zero is allowed and yields an empty page.

    Raises:
        ValidationError: If value is not a non-negative integer
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError("max must be a non-negative integer")
    try:
        parsed = int(value)
    except (ValueError, TypeError):
        raise ValidationError("max must be a non-negative integer") from None
    if parsed < 0:
        raise ValidationError("max must be a non-negative integer")
    return parsed


@dataclass(frozen=True)
class Commit:
    branch: str
    hash: str

    @classmethod
    def from_payload(cls, payload: Any) -> "Commit":
        payload = _require_mapping(payload, "commit")
        return cls(
            branch=_required_str(payload, "branch"),
            hash=_required_str(payload, "hash"),
        )


@dataclass(frozen=True)
class RequestModule:
    name: str
    version: str
    status: ModuleStatus

    @classmethod
    def from_payload(cls, payload: Any) -> "RequestModule":
        payload = _require_mapping(payload, "module")
        return cls(
            name=_required_str(payload, "name"),
            version=_required_str(payload, "version"),
            status=parse_module_status(payload.get("status")),
        )


@dataclass(frozen=True)
class ResponseModule:
    """One surviving entry of a client's module inventory."""
    name: str
    version: str
    status: ModuleStatus = ModuleStatus.ADD

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class RequestProject:
    name: str
    description: str = ""
    repository_url: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "RequestProject":
        payload = _require_mapping(payload, "Request body")
        name = _required_str(payload, "name")
        if "/" in name:
            raise ValidationError("name must not contain '/'")
        return cls(
            name=name,
            description=_optional_str(payload, "description"),
            repository_url=_optional_str(payload, "repository_url"),
        )


@dataclass(frozen=True)
class RequestDeploy:
    user: str
    commit: Commit
    version: str
    client: str
    description: str = ""
    changelog_url: str = ""
    automatic: bool = False
    modules: List[RequestModule] = field(default_factory=list)
    configuration: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RequestDeploy":
        payload = _require_mapping(payload, "Request body")

        automatic = payload.get("automatic", False)
        if not isinstance(automatic, bool):
            raise ValidationError("automatic must be a boolean")

        raw_modules = payload.get("modules") or []
        if not isinstance(raw_modules, list):
            raise ValidationError("modules must be a list")

        return cls(
            user=_required_str(payload, "user"),
            commit=Commit.from_payload(payload.get("commit")),
            version=_required_str(payload, "version"),
            client=_required_str(payload, "client"),
            description=_optional_str(payload, "description"),
            changelog_url=_optional_str(payload, "changelog_url"),
            automatic=automatic,
            modules=[RequestModule.from_payload(m) for m in raw_modules],
            configuration=_optional_str(payload, "configuration", default=None),
        )


@dataclass(frozen=True)
class RequestEvent:
    status: DeployStatus
    description: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "RequestEvent":
        payload = _require_mapping(payload, "Request body")
        return cls(
            status=parse_deploy_status(payload.get("status")),
            description=_optional_str(payload, "description"),
        )
