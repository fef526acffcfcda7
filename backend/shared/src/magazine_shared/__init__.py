"""Shared models and services for the magazine subscription backend."""
