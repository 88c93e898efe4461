"""
Repo-Concat: Flatten a repository into a single LLM-ready text file.

Resolves a repository URL or local directory, walks it with layered ignore rules
and a text-file allowlist, and concatenates every surviving file into one artifact.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
