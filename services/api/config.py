from __future__ import annotations

import os


# API-Metadaten (via Env überschreibbar)
API_TITLE = os.getenv("PCAP_FILTER_API_TITLE", "pcap-filter API")
API_VERSION = os.getenv("PCAP_FILTER_API_VERSION", "0.1.0")

# Capture-Tool, dem der kompilierte Filter übergeben wird
CAPTURE_BINARY = os.getenv("PCAP_FILTER_CAPTURE_BINARY", "tcpdump")
MAX_EXPRESSION_LENGTH = int(os.getenv("PCAP_FILTER_MAX_EXPRESSION_LENGTH", "1000"))

# Kommagetrennte Liste erlaubter Origins für das Frontend
CORS_ORIGINS = [
	origin.strip()
	for origin in os.getenv(
		"PCAP_FILTER_CORS_ORIGINS",
		"http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
	).split(",")
	if origin.strip()
]
