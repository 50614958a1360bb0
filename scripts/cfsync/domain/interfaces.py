"""
Domain Layer — Interfaces (Abstract Contracts)
-----------------------------------------------
These are ABSTRACT definitions of what the infrastructure must provide.
The domain layer defines the shape; the infrastructure layer implements it.

High-level modules (ProjectReconciler, ArtifactPublisher) depend on these
abstractions, never on CloudflareClient or subprocess directly. Tests swap
in fakes without changing a single line of application code.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from .entities import CommandResult, RemoteProjectRecord


class IPagesProjects(ABC):
    """
    Contract for reading and mutating Pages projects.
    Payloads are already in the platform's vocabulary.
    """

    @abstractmethod
    async def get_project(self, account_id: str, name: str) -> RemoteProjectRecord:
        """
        Fetch one project by name.
        Raises ProjectNotFoundError if it does not exist.
        """
        ...

    @abstractmethod
    async def create_project(self, account_id: str, body: dict) -> None:
        ...

    @abstractmethod
    async def edit_project(self, account_id: str, name: str, body: dict) -> None:
        ...

    @abstractmethod
    async def delete_project(self, account_id: str, name: str) -> None:
        """Delete a project and its whole deployment history."""
        ...


class IWorkerScripts(ABC):
    """Contract for publishing worker scripts."""

    @abstractmethod
    async def upsert_script(
        self,
        account_id: str,
        script_name: str,
        metadata: dict,
        main_module: str,
        content: str,
    ) -> None:
        """Create the script, or replace it if it already exists."""
        ...

    @abstractmethod
    async def get_subdomain(self, account_id: str) -> str:
        """Return the account's workers.dev subdomain."""
        ...


class ICommandRunner(ABC):
    """Contract for running a local build command."""

    @abstractmethod
    def run(self, command: str, cwd: str) -> CommandResult:
        """Run `command` in `cwd`, blocking until it exits."""
        ...


class IOutputSink(ABC):
    """Contract for recording named results for later pipeline steps."""

    @abstractmethod
    def set_output(self, name: str, value: str) -> None:
        ...
