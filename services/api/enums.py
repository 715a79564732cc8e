from __future__ import annotations


class ErrorMessages:
    """Centralized error messages"""
    INTERFACE_NOT_FOUND = "Interface nicht gefunden"
    NETWORK_INTERFACES_ERROR = "Fehler beim Abrufen der Netzwerk-Interfaces"
    PROCESS_LOOKUP_ERROR = "Fehler beim Abrufen der laufenden Captures"
