"""Top-level application orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.policy_runtime import (
    build_friends,
    build_policy,
    configure_logging,
    load_effective_config,
    resolve_save_path,
)
from quest.manager import GoalManager


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    manager: GoalManager
    save_path: Path

    def save(self) -> None:
        self.manager.save(self.save_path)


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None, save_file: Path | None = None) -> None:
        self.root = (root or Path.cwd()).resolve()
        self.save_file = save_file

    def build(self, load: bool = True) -> RuntimeBundle:
        config = load_effective_config(self.root)
        configure_logging(config)
        save_path = resolve_save_path(self.root, config, self.save_file)

        manager = GoalManager(policy=build_policy(config), friends=build_friends(config))
        if load:
            manager.load(save_path)

        return RuntimeBundle(config=config, manager=manager, save_path=save_path)
