"""
结果处理：缓存合并、结果存储、运行配置和流水线

  本次定位结果 ─┐
                ├─ [merger.py] ── 按用户名合并 ──→ [store.py] ── ips.json
  上次结果 ─────┘
"""

from processing.config import ConfigError, Credentials, WhereConfig, build_config, load_credentials
from processing.merger import reconcile
from processing.pipeline import PipelineResult, run_pipeline
from processing.store import StoreError, load_locations, save_locations

__all__ = [
    "ConfigError",
    "Credentials",
    "PipelineResult",
    "StoreError",
    "WhereConfig",
    "build_config",
    "load_credentials",
    "load_locations",
    "reconcile",
    "run_pipeline",
    "save_locations",
]
