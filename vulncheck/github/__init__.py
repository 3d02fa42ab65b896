"""
GitHub API integration for VulnCheck.
"""

from .api import GitHubAPI
from .models import RepositoryMetadata, FileTree, FileContent

__all__ = ['GitHubAPI', 'RepositoryMetadata', 'FileTree', 'FileContent']
