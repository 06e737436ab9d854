"""
Greeting E2E

End-to-end test harness for the greeting receiver and greeting log API.
Sends generated greetings to the receiver and verifies each one shows up
in the greeting log before a deadline.
"""

__version__ = "0.1.0"

from .main import (
    ClientError,
    ConfigError,
    DuplicateMessageIdError,
    E2EConfig,
    E2EError,
    GeneratedMessage,
    GenerateMessageError,
    GreetingCommand,
    GreetingResponse,
    LogEntry,
    MessageGeneratorKind,
    TaskStatus,
    TestTask,
    ValidationError,
    VerificationTimeoutError,
)
from .registry import TaskRegistry
from .engine import E2ETestRunner
from .report import VerificationReport
from .clients import GreetingApiClient, GreetingReceiverClient
from .generators import (
    ClaudeMessageGenerator,
    LocalMessageGenerator,
    MessageGenerator,
    OllamaMessageGenerator,
    create_generator,
)

__all__ = [
    # Engine
    "E2ETestRunner",
    "TaskRegistry",
    "VerificationReport",
    # Clients
    "GreetingApiClient",
    "GreetingReceiverClient",
    # Generators
    "MessageGenerator",
    "LocalMessageGenerator",
    "OllamaMessageGenerator",
    "ClaudeMessageGenerator",
    "create_generator",
    # Types
    "E2EConfig",
    "MessageGeneratorKind",
    "GeneratedMessage",
    "GreetingCommand",
    "GreetingResponse",
    "LogEntry",
    "TaskStatus",
    "TestTask",
    # Errors
    "E2EError",
    "ConfigError",
    "ValidationError",
    "ClientError",
    "VerificationTimeoutError",
    "GenerateMessageError",
    "DuplicateMessageIdError",
    # Meta
    "__version__",
]
