"""
Bootstrap
설정 파일(YAML) 또는 환경 변수로 커넥터를 구성하는 팩토리.
"""
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from dsgraph.connector import GraphStorageConnector
from dsgraph.core.config import get_settings
from dsgraph.core.logger import setup_logger

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "connector.yaml"


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load connector options from YAML.

    The file holds a top-level ``connector`` mapping. Without a file the
    options come from environment settings.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not os.path.exists(config_path):
        logger.warning(f"Config not found: {config_path}, using environment settings")
        return get_settings().to_options()

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    # 환경변수 치환
    config = _substitute_env_vars(config)
    return config.get("connector", config)


def _substitute_env_vars(config: Any) -> Any:
    """${VAR} 형태의 환경변수 치환"""
    if isinstance(config, dict):
        return {k: _substitute_env_vars(v) for k, v in config.items()}
    elif isinstance(config, list):
        return [_substitute_env_vars(v) for v in config]
    elif isinstance(config, str) and config.startswith("${") and config.endswith("}"):
        var_name = config[2:-1]
        return os.environ.get(var_name, "")
    return config


def build_connector(
    options: Optional[Dict[str, Any]] = None,
    config_path: Optional[str] = None,
) -> GraphStorageConnector:
    """GraphStorageConnector 인스턴스 생성"""
    setup_logger()
    if options is None:
        options = load_config(config_path)
    return GraphStorageConnector(options)


_connector: Optional[GraphStorageConnector] = None


def get_connector() -> GraphStorageConnector:
    """싱글톤 커넥터 반환"""
    global _connector
    if _connector is None:
        _connector = build_connector()
    return _connector


def reset_all() -> None:
    """싱글톤 리셋 (테스트용)"""
    global _connector
    _connector = None
    get_settings.cache_clear()
