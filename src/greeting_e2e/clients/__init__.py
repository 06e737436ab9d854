"""
Service Clients

HTTP clients for the greeting receiver and the greeting log API.
"""

from .base import BaseServiceClient
from .greeting_api import GreetingApiClient
from .greeting_receiver import GreetingReceiverClient

__all__ = [
    "BaseServiceClient",
    "GreetingApiClient",
    "GreetingReceiverClient",
]
