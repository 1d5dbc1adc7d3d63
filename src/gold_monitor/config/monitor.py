from __future__ import annotations

import re
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

_FIELD_LABELS = {
    "buy_avg_price": "买入价格",
    "target_buy_price": "目标买入价格",
    "target_sell_price": "目标卖出价格",
    "interval_seconds": "间隔时间",
    "stats_window_minutes": "统计窗口",
    "notify_enabled": "通知开关",
    "notify_key": "通知key",
}

_REQUIRED_FIELDS = ("buy_avg_price", "target_buy_price", "target_sell_price", "interval_seconds")

_INTEGER_RE = re.compile(r"\+?[0-9]+")


class ConfigError(ValueError):
    pass


class ConfigForm(BaseModel):
    """Raw operator input, edited live while the monitor runs."""

    buy_avg_price: str = ""
    target_buy_price: str = ""
    target_sell_price: str = ""
    interval_seconds: str = ""
    stats_window_minutes: str = ""
    notify_enabled: bool = False
    notify_key: str = ""

    def missing_fields(self) -> list[str]:
        return [name for name in _REQUIRED_FIELDS if not getattr(self, name).strip()]


class MonitorConfig(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    buy_avg_price: float
    target_buy_price: float
    target_sell_price: float
    interval_seconds: int = Field(gt=0)
    stats_window_minutes: int = Field(default=0, ge=0)
    notify_enabled: bool = False
    notify_key: str = ""

    @field_validator("interval_seconds", "stats_window_minutes", mode="before")
    @classmethod
    def _plain_integer(cls, value: object, info: ValidationInfo) -> object:
        if not isinstance(value, str):
            return value
        text = value.strip()
        if not text and info.field_name == "stats_window_minutes":
            return 0
        # Decimal digits only: no "10.0", no "1_0".
        if _INTEGER_RE.fullmatch(text) is None:
            raise ValueError(f"{text!r} is not a plain integer")
        return int(text)

    @field_validator("notify_key")
    @classmethod
    def _strip_key(cls, value: str) -> str:
        return value.strip()


def parse_form(form: ConfigForm) -> MonitorConfig:
    if form.missing_fields():
        raise ConfigError("请填写所有字段")
    raw = form.model_dump()
    for name in ("buy_avg_price", "target_buy_price", "target_sell_price", "interval_seconds"):
        raw[name] = raw[name].strip()
    try:
        return MonitorConfig.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        name = str(first["loc"][0]) if first["loc"] else ""
        raise ConfigError(f"{_FIELD_LABELS.get(name, name)}无效") from e


class TargetsSection(BaseModel):
    buy_avg_price: float
    target_buy_price: float
    target_sell_price: float


class MonitorSection(BaseModel):
    interval_seconds: int = Field(default=10, gt=0)
    stats_window_minutes: int = Field(default=60, ge=0)


class NotifySection(BaseModel):
    enabled: bool = False
    key: str = ""


class MonitorFile(BaseModel):
    targets: TargetsSection
    monitor: MonitorSection = Field(default_factory=MonitorSection)
    notify: NotifySection = Field(default_factory=NotifySection)

    def validate_logic(self) -> None:
        if self.targets.buy_avg_price <= 0:
            raise ValueError("targets.buy_avg_price must be > 0")
        if self.targets.target_sell_price <= 0:
            raise ValueError("targets.target_sell_price must be > 0")

    def to_form(self) -> ConfigForm:
        return ConfigForm(
            buy_avg_price=str(self.targets.buy_avg_price),
            target_buy_price=str(self.targets.target_buy_price),
            target_sell_price=str(self.targets.target_sell_price),
            interval_seconds=str(self.monitor.interval_seconds),
            stats_window_minutes=str(self.monitor.stats_window_minutes),
            notify_enabled=self.notify.enabled,
            notify_key=self.notify.key,
        )


def load_monitor_file(path: Path) -> MonitorFile:
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    cfg = MonitorFile.model_validate(raw)
    cfg.validate_logic()
    return cfg
