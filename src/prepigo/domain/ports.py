"""
Ports (interfaces) for the storage collaborator.

These define the contract that infrastructure adapters must implement.
The scheduling core never performs I/O itself; the interface layer loads
data through a repository, calls the core, and writes results back.
"""

from abc import ABC, abstractmethod
from datetime import date

from .models import Container, ContainerKind, Exam, Item, ReviewLog
from .settings import SrsSettings


class CollectionRepository(ABC):
    """
    Port for reading the study collection and persisting review outcomes.

    Implementations:
        - YamlCollectionRepository: A YAML/JSON collection file on disk.
    """

    @abstractmethod
    def load_forest(self, kind: ContainerKind) -> list[Container]:
        """
        Load every root container of the given kind with its subtree.

        Args:
            kind: 'deck' for flashcard decks, 'bank' for question banks.
        """
        pass

    @abstractmethod
    def load_settings(self) -> SrsSettings:
        """Load the global scheduling settings."""
        pass

    @abstractmethod
    def load_exams(self) -> list[Exam]:
        """Load all exams (past ones included)."""
        pass

    @abstractmethod
    def load_introduced_today(self, today: date) -> frozenset[str]:
        """
        Ids of items first introduced on `today`.

        Returns an empty set when the stored snapshot belongs to another day.
        """
        pass

    @abstractmethod
    def save_review(self, item: Item, log: ReviewLog, today: date) -> None:
        """
        Persist an updated item and append its review log entry.

        Implementations also record the item as introduced today when the
        review moved it out of the New state.
        """
        pass
