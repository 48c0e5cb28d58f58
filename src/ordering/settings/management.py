"""Site settings management — command and handler used by the admin panel."""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.settings.setting import SETTING_KEYS, SettingKey, SiteSetting

_AMOUNT_KEYS = {SettingKey.STL_FILE_PRICE.value, SettingKey.SHIPPING_COST.value}
_OBJECT_KEYS = {SettingKey.PRODUCTS.value, SettingKey.PROMO_CODES.value, SettingKey.MAINTENANCE_MODE.value}


def _validate_setting_value(key, value):
    if key in _AMOUNT_KEYS:
        if isinstance(value, bool) or not isinstance(value, int | float) or value < 0:
            raise ValidationError({"value": [f"{key} must be a non-negative number"]})
    elif key in _OBJECT_KEYS and not isinstance(value, dict):
        raise ValidationError({"value": [f"{key} must be an object"]})

    if key == SettingKey.MAINTENANCE_MODE.value and not isinstance(value.get("enabled"), bool):
        raise ValidationError({"value": ["maintenance_mode.enabled must be true or false"]})


@ordering.command(part_of="SiteSetting")
class UpdateSiteSetting:
    key = String(required=True, max_length=50)
    value = Text(required=True)  # JSON


@ordering.command_handler(part_of=SiteSetting)
class SiteSettingHandler:
    @handle(UpdateSiteSetting)
    def update_setting(self, command):
        if command.key not in SETTING_KEYS:
            raise ValidationError({"key": [f"Unknown setting: {command.key}"]})

        try:
            value = json.loads(command.value)
        except ValueError as exc:
            raise ValidationError({"value": ["Setting value must be valid JSON"]}) from exc
        _validate_setting_value(command.key, value)

        repo = current_domain.repository_for(SiteSetting)
        try:
            setting = repo.get(command.key)
            setting.replace_value(value)
        except ObjectNotFoundError:
            setting = SiteSetting.create(command.key, value)
        repo.add(setting)
        return setting.key
