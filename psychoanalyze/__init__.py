"""PsychoAnalyze — evolving psychological profiles from multimodal evidence."""

__version__ = "0.4.0"
