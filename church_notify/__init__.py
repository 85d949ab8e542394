"""Live notification service for the church web application."""

__version__ = "0.1.0"
