"""
Internationalization (i18n) module for the domain list synchronization engine.

Provides translations for all user-facing CLI messages in German (de) and
English (en).
"""

from typing import Optional


# Supported languages
SUPPORTED_LANGUAGES = frozenset({"de", "en"})
DEFAULT_LANGUAGE = "de"


# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Refresh
    "refresh.skipped": {
        "de": "Rate-Limit aktiv, Aktualisierung übersprungen",
        "en": "Rate limit active, refresh skipped",
    },
    "refresh.reloaded": {
        "de": "Domainliste neu geladen: {domains} Domains aus {records} Einträgen",
        "en": "Domain list reloaded: {domains} domains from {records} records",
    },
    "refresh.up_to_date": {
        "de": "Domainliste ist aktuell ({domains} Domains)",
        "en": "Domain list is up to date ({domains} domains)",
    },
    "refresh.kept": {
        "de": "Keine neuen Domains geladen, bisherige Liste bleibt ({domains} Domains)",
        "en": "No new domains loaded, keeping previous list ({domains} domains)",
    },
    "refresh.failed": {
        "de": "Aktualisierung fehlgeschlagen: {error}",
        "en": "Refresh failed: {error}",
    },
    "refresh.reason": {
        "de": "Grund: {reason}",
        "en": "Reason: {reason}",
    },

    # Host checks
    "check.listed": {
        "de": "{host}: gelistet",
        "en": "{host}: listed",
    },
    "check.unlisted": {
        "de": "{host}: nicht gelistet",
        "en": "{host}: not listed",
    },
    "check.no_host": {
        "de": "{value}: kein prüfbarer Host",
        "en": "{value}: no checkable host",
    },

    # Unmatched sites
    "unmatched.header": {
        "de": "Nicht gelistete Domains ({count}):",
        "en": "Unlisted domains ({count}):",
    },
    "unmatched.empty": {
        "de": "Keine nicht gelisteten Domains",
        "en": "No unlisted domains",
    },
    "unmatched.cleared": {
        "de": "Liste der nicht gelisteten Domains geleert",
        "en": "Unlisted domain list cleared",
    },

    # Monitoring mode
    "monitoring.enabled": {
        "de": "Vollständige Überwachung aktiviert",
        "en": "Full monitoring enabled",
    },
    "monitoring.disabled": {
        "de": "Vollständige Überwachung deaktiviert",
        "en": "Full monitoring disabled",
    },

    # Watch
    "watch.started": {
        "de": "Überwachung gestartet, Prüfung alle {interval} Sekunden. URLs zeilenweise eingeben, Strg+D beendet.",
        "en": "Watching, checking every {interval} seconds. Enter URLs line by line, Ctrl+D to stop.",
    },
    "watch.stopped": {
        "de": "Überwachung beendet",
        "en": "Watch stopped",
    },

    # Status
    "status.domains": {
        "de": "Bekannte Domains: {count}",
        "en": "Known domains: {count}",
    },
    "status.unmatched": {
        "de": "Nicht gelistete Domains: {count}",
        "en": "Unlisted domains: {count}",
    },
    "status.monitoring": {
        "de": "Vollständige Überwachung: {state}",
        "en": "Full monitoring: {state}",
    },
    "status.rate_limited": {
        "de": "Rate-Limit aktiv, noch {seconds} Sekunden",
        "en": "Rate limited, {seconds} seconds left",
    },
    "status.rate_limit_ok": {
        "de": "Kein Rate-Limit aktiv",
        "en": "No rate limit active",
    },
    "status.cache_age": {
        "de": "Letztes vollständiges Laden vor {minutes} Minuten ({records} Einträge)",
        "en": "Last full reload {minutes} minutes ago ({records} records)",
    },
    "status.cache_never": {
        "de": "Noch kein vollständiges Laden",
        "en": "No full reload yet",
    },
    "status.badge": {
        "de": "Badge: '{text}' ({color})",
        "en": "Badge: '{text}' ({color})",
    },
    "status.on": {
        "de": "an",
        "en": "on",
    },
    "status.off": {
        "de": "aus",
        "en": "off",
    },

    # Configuration
    "config.from": {
        "de": "Konfiguration aus: {path}",
        "en": "Configuration from: {path}",
    },
    "config.not_found": {
        "de": "Keine Konfiguration gefunden unter: {path}",
        "en": "No configuration found at: {path}",
    },
    "config.init_hint": {
        "de": "Mit 'config init' eine Standardkonfiguration anlegen.",
        "en": "Use 'config init' to create a default configuration.",
    },
    "config.exists": {
        "de": "Konfiguration existiert bereits unter: {path}",
        "en": "Configuration already exists at: {path}",
    },
    "config.force_hint": {
        "de": "Mit --force überschreiben.",
        "en": "Use --force to overwrite.",
    },
    "config.created": {
        "de": "Konfiguration angelegt unter: {path}",
        "en": "Configuration created at: {path}",
    },
    "config.valid": {
        "de": "Konfiguration unter {path} ist gültig.",
        "en": "Configuration at {path} is valid.",
    },
    "config.invalid": {
        "de": "Ungültige Konfiguration: {error}",
        "en": "Invalid configuration: {error}",
    },
    "config.save_failed": {
        "de": "Konfiguration konnte nicht gespeichert werden: {error}",
        "en": "Could not save configuration: {error}",
    },

    # CLI
    "cli.description": {
        "de": "Gleicht besuchte Domains mit einer öffentlich gepflegten Domainliste ab",
        "en": "Checks visited domains against a publicly maintained domain list",
    },
    "cli.version": {
        "de": "Version: {version}",
        "en": "Version: {version}",
    },
}


def get_message(
    key: str,
    language: Optional[str] = None,
    **kwargs,
) -> str:
    """
    Get a translated message by key.

    Args:
        key: The message key (e.g., 'check.listed')
        language: Language code ('de' or 'en'). Defaults to DEFAULT_LANGUAGE.
        **kwargs: Format arguments for the message template

    Returns:
        The translated and formatted message string.
        If the key is not found, returns the key itself.
        If the language is not found, falls back to DEFAULT_LANGUAGE.

    Examples:
        >>> get_message('unmatched.empty', 'en')
        'No unlisted domains'
        >>> get_message('check.listed', 'de', host='example.com')
        'example.com: gelistet'
    """
    if language is None or language not in SUPPORTED_LANGUAGES:
        language = DEFAULT_LANGUAGE

    translations = TRANSLATIONS.get(key)
    if translations is None:
        return key

    message = translations.get(language)
    if message is None:
        message = translations.get(DEFAULT_LANGUAGE)
    if message is None:
        return key

    if kwargs:
        try:
            message = message.format(**kwargs)
        except KeyError:
            # Missing placeholder values leave the template as is
            pass

    return message


def get_all_message_keys() -> set[str]:
    return set(TRANSLATIONS.keys())


def has_translation(key: str, language: str) -> bool:
    """Check if a translation exists for a key and language."""
    translations = TRANSLATIONS.get(key)
    if translations is None:
        return False
    return language in translations


def get_missing_translations(language: str) -> set[str]:
    """Get all message keys that are missing translations for a language."""
    return {
        key for key, translations in TRANSLATIONS.items()
        if language not in translations
    }


def validate_translations() -> dict[str, set[str]]:
    """
    Validate that all languages have all translations.

    Returns:
        Dictionary mapping language codes to sets of missing message keys.
        Empty sets indicate complete translations.
    """
    return {language: get_missing_translations(language) for language in SUPPORTED_LANGUAGES}
