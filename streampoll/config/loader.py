"""
Konfigurationsverwaltung für streampoll
"""
import json
import logging
import os
from .constants import CONFIG_FILE, SECRETS_FILE, DEFAULT_CONFIG

LOGGER = logging.getLogger(__name__)


def load_secrets(secrets_file=SECRETS_FILE):
    """Lädt Client-ID und Client-Secret der Twitch-Anwendung."""
    if not os.path.exists(secrets_file):
        raise FileNotFoundError(
            f"Datei '{secrets_file}' fehlt. Bitte lege sie an und trage client_id/client_secret dort ein."
        )

    with open(secrets_file, 'r') as f:
        secrets_data = json.load(f)

    for key in ['client_id', 'client_secret']:
        if not secrets_data.get(key):
            raise ValueError(f"'{key}' fehlt in {secrets_file}.")

    return secrets_data


def merge_defaults(loaded_config):
    """Ergänzt fehlende Keys aus DEFAULT_CONFIG (eine Ebene tief)."""
    merged = json.loads(json.dumps(loaded_config))  # tiefe Kopie
    for key, value in DEFAULT_CONFIG.items():
        if key not in merged:
            merged[key] = json.loads(json.dumps(value))
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            for sub_key, sub_value in value.items():
                if sub_key not in merged[key]:
                    merged[key][sub_key] = sub_value
    return merged


def validate_config(config):
    """Prüft Werte, die später ohne Rückfrage benutzt werden."""
    if not str(config['redirect_uri']).startswith('http://'):
        raise ValueError("'redirect_uri' muss eine lokale http:// Adresse sein.")

    timeout = config['request_timeout']
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError("'request_timeout' muss eine positive Zahl sein.")

    if not isinstance(config['scopes'], list):
        raise ValueError("'scopes' muss eine Liste sein.")

    interval = config['poll'].get('refresh_interval')
    if not isinstance(interval, (int, float)) or interval <= 0:
        raise ValueError("'poll.refresh_interval' muss eine positive Zahl sein.")


def load_config(config_file=CONFIG_FILE, secrets_file=SECRETS_FILE):
    """Lädt die Konfiguration, ergänzt Defaults und sensitive Daten."""
    if os.path.exists(config_file):
        with open(config_file, 'r') as f:
            loaded_config = json.load(f)
    else:
        LOGGER.info("Konfigurationsdatei %s nicht gefunden. Erstelle neue.", config_file)
        with open(config_file, 'w') as f:
            json.dump(DEFAULT_CONFIG, f, indent=4)
        loaded_config = json.loads(json.dumps(DEFAULT_CONFIG))

    config = merge_defaults(loaded_config)
    validate_config(config)

    secrets_data = load_secrets(secrets_file)
    config['client_id'] = secrets_data['client_id']
    config['client_secret'] = secrets_data['client_secret']
    return config


def save_config(config, config_file=CONFIG_FILE):
    """Speichert die Konfiguration ohne sensible Werte"""
    safe_config = json.loads(json.dumps(config))
    for key in ['client_id', 'client_secret']:
        safe_config.pop(key, None)

    with open(config_file, 'w') as f:
        json.dump(safe_config, f, indent=4)
