"""
Configuration and Types for the Greeting E2E harness

Wire types for the greeting receiver and log API, the task state tracked
per generated message, the run configuration and the error taxonomy.
"""

import re
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse


# =========================================================================
# Errors
# =========================================================================

class E2EError(Exception):
    """Base exception for harness errors"""
    pass


class ConfigError(E2EError):
    """Config file missing, unreadable or malformed"""
    pass


class ValidationError(E2EError):
    """Config values out of range"""
    pass


class ClientError(E2EError):
    """Non-success status or transport failure from one of the services"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class VerificationTimeoutError(E2EError):
    """The log did not catch up with the sent messages before the deadline"""

    def __init__(self, message: str, outstanding: Optional[List[str]] = None):
        super().__init__(message)
        # external references of the tasks still unverified
        self.outstanding = outstanding or []


class GenerateMessageError(E2EError):
    """A message generator could not produce valid content"""
    pass


class DuplicateMessageIdError(E2EError):
    """The receiver returned a message id that is already tracked"""

    def __init__(self, message_id: str):
        super().__init__(f"Duplicate message id: {message_id}")
        self.message_id = message_id


# =========================================================================
# Wire types
# =========================================================================

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as sent by the services"""
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {value!r}")
    # fromisoformat only takes 3 or 6 fraction digits before 3.11
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def new_external_reference() -> str:
    """Time-ordered unique reference for an outgoing command"""
    factory = getattr(uuid, "uuid7", uuid.uuid1)
    return str(factory())


@dataclass
class GeneratedMessage:
    """Content of one synthetic greeting"""
    to: str
    from_: str
    heading: str
    message: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedMessage":
        """Build from a generator's JSON object, rejecting empty fields"""
        values = {}
        for key in ("to", "from", "heading", "message"):
            value = data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise GenerateMessageError(f"Generated message has no valid '{key}': {data!r}")
            values[key] = value.strip()

        return cls(
            to=values["to"],
            from_=values["from"],
            heading=values["heading"],
            message=values["message"],
        )


@dataclass(frozen=True)
class GreetingCommand:
    """Greeting submitted to the receiver"""
    to: str
    from_: str
    heading: str
    message: str
    external_reference: str = field(default_factory=new_external_reference)
    created: datetime = field(default_factory=utc_now)

    @classmethod
    def from_generated(cls, generated: GeneratedMessage) -> "GreetingCommand":
        return cls(
            to=generated.to,
            from_=generated.from_,
            heading=generated.heading,
            message=generated.message,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the receiver's JSON body"""
        return {
            "externalReference": self.external_reference,
            "to": self.to,
            "from": self.from_,
            "heading": self.heading,
            "message": self.message,
            "created": format_timestamp(self.created),
        }


@dataclass
class GreetingResponse:
    """Receiver acknowledgement"""
    message_id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GreetingResponse":
        message_id = data["messageId"]
        if message_id is None or not str(message_id).strip():
            raise ValueError(f"Blank messageId: {message_id!r}")
        return cls(message_id=str(message_id))


@dataclass(frozen=True)
class LogEntry:
    """One durable record from the greeting log"""
    id: int
    greeting_id: int
    message_id: str
    created: datetime
    external_reference: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        return cls(
            id=int(data["id"]),
            greeting_id=int(data["greetingId"]),
            message_id=str(data["messageId"]),
            created=parse_timestamp(data["created"]),
            external_reference=data.get("externalReference"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "greetingId": self.greeting_id,
            "messageId": self.message_id,
            "created": format_timestamp(self.created),
        }
        if self.external_reference is not None:
            data["externalReference"] = self.external_reference
        return data


# =========================================================================
# Task state
# =========================================================================

class TaskStatus(Enum):
    """Lifecycle of a generated message"""
    CREATED = "created"
    SENT = "sent"
    SEND_FAILED = "send_failed"
    VERIFIED = "verified"


@dataclass
class TestTask:
    """
    State of one generated message through send and verification.

    A task is keyed in the registry by the receiver's message id once sent.
    A task that never shows up in the log stays SENT and is reported
    unverified.
    """
    __test__ = False

    command: GreetingCommand
    status: TaskStatus = TaskStatus.CREATED
    message_id: Optional[str] = None
    log_entry: Optional[LogEntry] = None
    sent_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def external_reference(self) -> str:
        return self.command.external_reference

    @property
    def is_verified(self) -> bool:
        return self.log_entry is not None

    @property
    def latency_ms(self) -> Optional[int]:
        """Time from send to the log entry being written"""
        if self.sent_at and self.log_entry:
            delta = self.log_entry.created - self.sent_at
            return int(delta.total_seconds() * 1000)
        return None

    def mark_sent(self, message_id: str) -> None:
        self.message_id = message_id
        self.sent_at = utc_now()
        self.status = TaskStatus.SENT

    def mark_send_failed(self, error: str) -> None:
        self.error = error
        self.status = TaskStatus.SEND_FAILED

    def mark_verified(self, entry: LogEntry) -> None:
        self.log_entry = entry
        self.status = TaskStatus.VERIFIED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "external_reference": self.external_reference,
            "status": self.status.value,
            "message_id": self.message_id,
            "created": format_timestamp(self.command.created),
            "sent_at": format_timestamp(self.sent_at) if self.sent_at else None,
            "log_entry": self.log_entry.to_dict() if self.log_entry else None,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }


# =========================================================================
# Configuration
# =========================================================================

class MessageGeneratorKind(Enum):
    """Available message generators"""
    LOCAL = "local"
    OLLAMA = "ollama"
    CLAUDE = "claude"


@dataclass
class E2EConfig:
    """
    Configuration for one E2E run.

    Loaded from YAML; a template with these defaults is written when the
    config file does not exist yet.
    """
    # Service endpoints
    greeting_receiver_url: str = "http://localhost:8080"
    greeting_api_url: str = "http://localhost:8080"

    # Test size
    greeting_log_limit: int = 100
    num_iterations: int = 10
    num_clients: int = 1

    # Message content
    message_generator: MessageGeneratorKind = MessageGeneratorKind.LOCAL
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "tinyllama"
    claude_model: str = "claude-3-5-haiku-20241022"

    # Timeouts
    verification_timeout_secs: float = 30.0
    poll_interval_secs: float = 1.0
    request_timeout_secs: float = 30.0

    # Exit policy
    fail_on_send_errors: bool = False

    def __post_init__(self):
        if isinstance(self.message_generator, str):
            try:
                self.message_generator = MessageGeneratorKind(self.message_generator.lower())
            except ValueError:
                raise ValidationError(
                    f"Unknown message_generator: {self.message_generator} "
                    f"(expected one of {[k.value for k in MessageGeneratorKind]})"
                )

    def validate(self) -> None:
        """Reject values the run cannot work with"""
        for name in ("num_iterations", "num_clients", "greeting_log_limit"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValidationError(f"{name} must be a positive integer, got {value!r}")

        for name in ("verification_timeout_secs", "poll_interval_secs", "request_timeout_secs"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise ValidationError(f"{name} must be a positive number, got {value!r}")

        for name in ("greeting_receiver_url", "greeting_api_url", "ollama_url"):
            value = getattr(self, name)
            parsed = urlparse(value) if isinstance(value, str) else None
            if not parsed or parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValidationError(f"{name} is not a valid http(s) URL: {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["message_generator"] = self.message_generator.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "E2EConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str) -> "E2EConfig":
        """Load config from YAML file, writing a template if it is missing"""
        import yaml

        config_path = Path(path)
        if not config_path.exists():
            write_config_template(config_path)
            raise ConfigError(
                f"Config file not found, wrote template to {config_path}. "
                f"Edit it and run again."
            )

        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config {config_path} must be a mapping, got {type(data).__name__}")

        return cls.from_dict(data)


CONFIG_TEMPLATE_HEADER = """# Greeting E2E configuration
#
# message_generator: local | ollama | claude
# fail_on_send_errors: exit non-zero when any greeting could not be sent
"""


def write_config_template(path: Path) -> None:
    """Write a config file holding the default values"""
    import yaml

    path.parent.mkdir(parents=True, exist_ok=True)
    body = yaml.safe_dump(E2EConfig().to_dict(), sort_keys=False)
    path.write_text(CONFIG_TEMPLATE_HEADER + "\n" + body)
