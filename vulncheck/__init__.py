"""
VulnCheck - AI-assisted security review of GitHub repositories.
"""

__version__ = "1.0.0"
