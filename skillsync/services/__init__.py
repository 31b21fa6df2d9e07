"""
Business logic services for skillsync.
"""

from skillsync.services.auth_service import AuthService
from skillsync.services.remote import HttpSkillRemote, LocalSkillRemote, SkillRemote
from skillsync.services.sync_index import SyncIndexStore
from skillsync.services.sync_service import SyncService, compute_status
from skillsync.services.vault_service import VaultService
from skillsync.services.version_chain import InMemoryVersionStore, VersionChain

__all__ = [
    "AuthService",
    "HttpSkillRemote",
    "InMemoryVersionStore",
    "LocalSkillRemote",
    "SkillRemote",
    "SyncIndexStore",
    "SyncService",
    "VaultService",
    "VersionChain",
    "compute_status",
]
