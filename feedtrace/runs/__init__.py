"""Run orchestration for FeedTrace."""

from .pipelines import config_hash, load_preset, merge_config, presets, run_pipeline

__all__ = ["config_hash", "load_preset", "merge_config", "presets", "run_pipeline"]
