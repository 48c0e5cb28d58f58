"""Site settings — key/value rows holding the shop's business configuration."""

import json
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.exceptions import ValidationError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.settings.config import ShopConfig

logger = structlog.get_logger(__name__)


class SettingKey(Enum):
    PRODUCTS = "products"
    STL_FILE_PRICE = "stl_file_price"
    SHIPPING_COST = "shipping_cost"
    PROMO_CODES = "promo_codes"
    MAINTENANCE_MODE = "maintenance_mode"


SETTING_KEYS = frozenset(key.value for key in SettingKey)


@ordering.aggregate
class SiteSetting:
    key = String(identifier=True, max_length=50)
    value = Text(required=True)  # JSON
    updated_at = DateTime()

    @classmethod
    def create(cls, key, value):
        if key not in SETTING_KEYS:
            raise ValidationError({"key": [f"Unknown setting: {key}"]})
        return cls(key=key, value=json.dumps(value), updated_at=datetime.now(UTC))

    @property
    def decoded_value(self):
        return json.loads(self.value)

    def replace_value(self, value):
        self.value = json.dumps(value)
        self.updated_at = datetime.now(UTC)


def read_settings() -> dict:
    """Decode every stored setting row into ``{key: value}``.

    Rows that are not valid JSON are skipped with a warning; the config
    layer then falls back to the defaults for that key.
    """
    repo = current_domain.repository_for(SiteSetting)
    values = {}
    for setting in repo._dao.query.all().items:
        try:
            values[setting.key] = setting.decoded_value
        except ValueError:
            logger.warning("Skipping malformed site setting", key=setting.key)
    return values


def load_shop_config() -> ShopConfig:
    """Load a fresh read-through snapshot of the shop configuration."""
    return ShopConfig.from_settings(read_settings())
