"""
Management command to create the default clinic settings.

Only keys that do not exist yet are created, so existing values are kept.
It's safe to run multiple times (idempotent).

Usage:
    python manage.py initialize_default_settings
"""

from django.core.management.base import BaseCommand

from clinic.services import SettingsService
from utils.constants import DEFAULT_SETTINGS


class Command(BaseCommand):
    help = 'Creates default clinic settings (name, address, receipt footer, alert windows)'

    def handle(self, *args, **options):
        """Create default settings that don't exist yet."""
        created_keys = SettingsService.initialize_defaults()

        for default in DEFAULT_SETTINGS:
            if default['key'] in created_keys:
                self.stdout.write(self.style.SUCCESS(f"✓ Created setting: {default['key']}"))
            else:
                self.stdout.write(self.style.WARNING(f"- Setting already exists: {default['key']}"))

        self.stdout.write(self.style.SUCCESS(
            f"\nDone. {len(created_keys)} created, {len(DEFAULT_SETTINGS) - len(created_keys)} already present."
        ))
