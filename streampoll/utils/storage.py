"""
Datei-basierte Speicherung des Sitzungs-Snapshots (Token + Benutzerdaten)
"""
import os


def load_session(path):
    """Lädt den gespeicherten Sitzungs-Snapshot, None falls keiner existiert"""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            blob = f.read().strip()
    except FileNotFoundError:
        return None
    return blob or None


def save_session(path, blob):
    """Speichert den Sitzungs-Snapshot. Enthält das Token unverschlüsselt!"""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(blob)


def delete_session(path):
    """Entfernt einen gespeicherten Snapshot (z.B. nach ungültigem Token)"""
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
