"""
AI analysis backends.

Each provider exposes one capability: review a single file and return the
vulnerabilities it found.
"""
