"""Quiz library backend: folders, quizzes, sharing and access control."""

__version__ = "1.0.0"
