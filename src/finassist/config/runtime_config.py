from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from ..nlp.keywords import PhraseTable
from .settings import settings


class AIConfig(BaseModel):
    enabled: bool = True
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_output_tokens: int = 800
    insight_temperature: float = 0.7
    insight_max_output_tokens: int = 2048
    system_prompt: str | None = None


class QueryCfg(BaseModel):
    result_limit: int = 500
    ai_sample_size: int = 15
    list_size: int = 10
    magnitude_scope: Literal["question", "adjacent"] = "question"


class InsightsCfg(BaseModel):
    period_days: int = 30
    retention_days: int = 30
    budget_warning_pct: float = 80.0


class RuntimeConfig(BaseModel):
    ai: AIConfig = Field(default_factory=AIConfig)
    query: QueryCfg = Field(default_factory=QueryCfg)
    insights: InsightsCfg = Field(default_factory=InsightsCfg)
    keywords: PhraseTable = Field(default_factory=PhraseTable)


def _config_dir(base_dir: str) -> Path:
    p = Path(base_dir) / "config"
    p.mkdir(parents=True, exist_ok=True)
    return p


def _runtime_path(base_dir: str) -> Path:
    return _config_dir(base_dir) / "runtime_config.yaml"


def _defaults_path(base_dir: str) -> Path:
    # optional file; if present, merged under runtime
    return _config_dir(base_dir) / "service_defaults.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data or {}


def _deep_merge(a: dict[str, Any], b: dict[str, Any]) -> dict[str, Any]:
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def load_runtime_config(base_dir: str | None = None) -> RuntimeConfig:
    base_dir = base_dir or settings.data_dir
    defaults = _load_yaml(_defaults_path(base_dir))
    runtime = _load_yaml(_runtime_path(base_dir))
    merged = _deep_merge(defaults, runtime)
    return RuntimeConfig(**merged)


def save_runtime_config(cfg: RuntimeConfig, base_dir: str | None = None) -> None:
    base_dir = base_dir or settings.data_dir
    runtime_path = _runtime_path(base_dir)
    raw = cfg.model_dump()
    runtime_path.write_text(yaml.safe_dump(raw, sort_keys=False), encoding="utf-8")
