"""
Clinic Settings Service

Key/value settings used for receipt branding and alert windows.
"""

import logging
from typing import Dict, List, Optional

from django.db import transaction

from clinic.models import Setting
from utils.constants import DEFAULT_SETTINGS
from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class SettingsService:
    """Service for reading and writing clinic settings."""

    @staticmethod
    def get_all():
        return Setting.objects.order_by('key')

    @staticmethod
    def get_by_key(key: str) -> Setting:
        try:
            return Setting.objects.get(key=key)
        except Setting.DoesNotExist:
            raise NotFoundError('setting')

    @staticmethod
    def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
        """Return a setting's value, or default when the key is not set."""
        return Setting.objects.filter(key=key).values_list('value', flat=True).first() or default

    @staticmethod
    def get_int(key: str, default: int) -> int:
        value = SettingsService.get_value(key)
        try:
            return int(value) if value not in (None, '') else default
        except (TypeError, ValueError):
            logger.warning(f"Setting {key}={value!r} is not an integer; using {default}")
            return default

    @staticmethod
    def as_dict() -> Dict[str, str]:
        return dict(Setting.objects.values_list('key', 'value'))

    @staticmethod
    def update(key: str, value: str, description: Optional[str] = None) -> Setting:
        """
        Create or update a setting by key.

        Args:
            key: Setting key
            value: New value
            description: Optional description; kept as-is when not given

        Returns:
            The saved Setting
        """
        defaults = {'value': value}
        if description is not None:
            defaults['description'] = description

        with transaction.atomic():
            setting, created = Setting.objects.update_or_create(key=key, defaults=defaults)

        logger.info(f"{'Created' if created else 'Updated'} setting {key}")
        return setting

    @staticmethod
    def initialize_defaults() -> List[str]:
        """
        Insert the default settings whose keys do not exist yet.
        Existing values are never overwritten, so this is safe to run repeatedly.

        Returns:
            Keys that were created by this call
        """
        created_keys = []
        for default in DEFAULT_SETTINGS:
            _, created = Setting.objects.get_or_create(
                key=default['key'],
                defaults={'value': default['value'], 'description': default['description']},
            )
            if created:
                created_keys.append(default['key'])

        if created_keys:
            logger.info(f"Initialized default settings: {', '.join(created_keys)}")
        return created_keys
