"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from designdream.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    InvalidConfigException,
    ExternalServiceException,
    DuplicateActiveSLAException,
    InvalidTransitionException,
    AlreadyTerminalException,
    ConcurrentModificationException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "InvalidConfigException",
    "ExternalServiceException",
    "DuplicateActiveSLAException",
    "InvalidTransitionException",
    "AlreadyTerminalException",
    "ConcurrentModificationException",
]
