"""Concrete collaborators: hosted HTTP backend, offline GET cache, local backend."""
