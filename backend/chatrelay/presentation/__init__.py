"""Presentation Layer - HTTP routes and the Socket.IO namespace."""
