"""
Conference Program & Assignment Engine

Equitable reviewer allocation, manual reviewer assignment, program
generation and agenda conflict detection over an injected repository.
"""

from .agenda_service import AgendaService, conflicts, find_conflicts
from .assignment_service import EquitableAssignmentAllocator, ManualAssignmentRegistry
from .notification_service import LoggingNotifier, Notifier, RepositoryNotifier
from .program_service import ProgramBuilder
from .repository import InMemoryRepository, Repository

__version__ = "0.1.0"
__all__ = [
    "AgendaService",
    "EquitableAssignmentAllocator",
    "InMemoryRepository",
    "LoggingNotifier",
    "ManualAssignmentRegistry",
    "Notifier",
    "ProgramBuilder",
    "Repository",
    "RepositoryNotifier",
    "conflicts",
    "find_conflicts",
]
