"""Shared infrastructure: exceptions, logging and configuration."""
