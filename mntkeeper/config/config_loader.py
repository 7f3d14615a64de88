# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/config/config_loader.py
from __future__ import annotations

import argparse
import glob
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..core.logger import Log
from ..core.utils import U


def _read_config_file(path: Path) -> Dict[str, Any]:
    """
    Read a JSON/YAML file into a dict. Files without a known suffix are tried
    as YAML (JSON is a subset).
    """
    raw = path.read_text(encoding="utf-8", errors="replace")
    if path.suffix.lower() == ".json":
        parsed = json.loads(raw)
    else:
        parsed = yaml.safe_load(raw)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError("top-level config must be a mapping/object (dict)")
    return parsed


def _normalize_keys(d: Dict[str, Any]) -> Dict[str, Any]:
    # `stop-timeout:` and `stop_timeout:` are the same key.
    return {str(k).strip().replace("-", "_"): v for k, v in d.items()}


def _deep_merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in over.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


class Config:
    @staticmethod
    def expand_configs(logger: logging.Logger, cfgs: List[str]) -> List[str]:
        """
        Expand ~, globs and directories (all *.yaml/*.yml/*.json inside, sorted)
        while keeping the command-line order.
        """
        out: List[str] = []
        for raw in cfgs:
            p = os.path.expanduser(str(raw))
            if os.path.isdir(p):
                found = sorted(
                    str(x) for x in Path(p).iterdir()
                    if x.is_file() and x.suffix.lower() in (".yaml", ".yml", ".json")
                )
                Log.trace(logger, "Config dir %s -> %d file(s)", p, len(found))
                out.extend(found)
                continue
            matches = sorted(glob.glob(p)) if glob.has_magic(p) else [p]
            if not matches:
                logger.warning("Config glob matched nothing: %s", raw)
            out.extend(matches)

        seen = set()
        uniq: List[str] = []
        for p in out:
            if p not in seen:
                seen.add(p)
                uniq.append(p)
        return uniq

    @staticmethod
    def load_many(logger: logging.Logger, cfgs: List[str]) -> Dict[str, Any]:
        """Load and merge config files; later files override earlier ones."""
        merged: Dict[str, Any] = {}
        for p in cfgs:
            path = Path(p)
            if not path.is_file():
                U.die(logger, f"Config file not found: {path}", 2)
            try:
                data = _normalize_keys(_read_config_file(path))
            except (OSError, ValueError, yaml.YAMLError) as e:
                U.die(logger, f"Failed to load config {path}: {e}", 2)
            logger.debug("Loaded config %s (%d key(s))", path, len(data))
            merged = _deep_merge(merged, data)
        return merged

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Dict[str, Any]) -> None:
        """
        Push config values into the parser as defaults so explicit CLI flags
        still win. Keys with no matching option are reported and ignored.
        """
        if not conf:
            return
        dests = {a.dest for a in parser._actions if a.dest and a.dest != argparse.SUPPRESS}
        known = {k: v for k, v in conf.items() if k in dests}
        unknown = sorted(k for k in conf if k not in dests)
        if unknown:
            logger.warning("Ignoring unknown config key(s): %s", ", ".join(unknown))
        if known:
            Log.trace(logger, "Config defaults: %s", sorted(known))
            parser.set_defaults(**known)
