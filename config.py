#!/usr/bin/env python3
# config.py
import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

    # GraphQL service that owns every record
    API_URL = os.getenv("API_URL", "http://localhost:4000/graphql")
    API_TIMEOUT = float(os.getenv("API_TIMEOUT", "30"))

    PAGE_LIMIT = int(os.getenv("PAGE_LIMIT", "10"))
    OPTIONS_LIMIT = int(os.getenv("OPTIONS_LIMIT", "1000"))
    SIDE_LIMIT = int(os.getenv("SIDE_LIMIT", "100"))

    CURRENCY = os.getenv("CURRENCY", "INR")
    LOCALE = os.getenv("LOCALE", "en_IN")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
