"""Run configuration consumed by the environment and handed to every hook."""

from e2ekit.envconf.config import EnvConfig, compile_pattern, new

__all__ = ["EnvConfig", "compile_pattern", "new"]
