"""Prompt templates for MockPanel agents."""

from .panel_templates import PanelPrompts

__all__ = ["PanelPrompts"]
