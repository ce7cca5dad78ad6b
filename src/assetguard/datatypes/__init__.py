"""Shared dataclasses and enums."""
