"""Outbound service clients (spike explanation)."""

from .explainer import ExplanationError, SpikeExplainer, build_prompt

__all__ = ["ExplanationError", "SpikeExplainer", "build_prompt"]
