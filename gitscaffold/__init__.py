"""Gitscaffold - scaffold projects from git templates."""

__version__ = "0.1.0"
