"""Utility helpers for the PromptCraft service."""
