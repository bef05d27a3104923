from .action_item_repository import ActionItemRepository
from .client_repository import ClientRepository, merge_personal_details
from .note_repository import NoteRepository

__all__ = ["ActionItemRepository", "ClientRepository", "NoteRepository", "merge_personal_details"]
