#!filepath: logmerge/config/app_config.py
import os
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .log_config import LogConfig
from .merge_config import MergeConfig
from .retry_config import RetryConfig
from logmerge.utils.errors import UserInputError

ENV_MAX_BUFFER = "LOGMERGE_MAX_BUFFER"


def default_config_path() -> str:
    """
    logmerge/config/app_config.py → logmerge/config/base.yml
    """
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @classmethod
    def load(cls, path: Optional[str] = None, env_file: Optional[str] = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - 默认使用 logmerge/config/base.yml
        - LOGMERGE_MAX_BUFFER 覆盖 YAML 里的 merge.max_buffer
        """
        # 1) 先加载 .env（不覆盖已存在的环境变量）
        load_dotenv(env_file)

        # 2) 决定配置文件路径
        if path is None:
            path = default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        # 3) 读取 YAML
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        # 4) env 注入
        max_buffer = os.getenv(ENV_MAX_BUFFER)
        if max_buffer:
            raw.setdefault("merge", {})
            raw["merge"] = dict(raw["merge"] or {}, max_buffer=max_buffer)

        try:
            return cls(**raw)
        except ValidationError as e:
            raise UserInputError(f"invalid config {path}: {e}") from e
