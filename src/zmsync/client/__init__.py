"""Client module - Drive access, authorization, sync and CLI."""
