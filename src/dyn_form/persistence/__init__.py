"""
Persistence for dyn-form.

- PersistenceCollaborator: async storage interface
- InMemoryCollaborator / HttpCollaborator: implementations
- FormSubmitter: submit_form / load_form orchestration
"""

from dyn_form.persistence.collaborator import PersistenceCollaborator
from dyn_form.persistence.http import HttpCollaborator
from dyn_form.persistence.memory import InMemoryCollaborator
from dyn_form.persistence.submitter import FormSubmitter

__all__ = [
    "PersistenceCollaborator",
    "HttpCollaborator",
    "InMemoryCollaborator",
    "FormSubmitter",
]
