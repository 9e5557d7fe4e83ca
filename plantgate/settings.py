"""
Default configuration.

Every key here can be overridden by ``config/app.py``, ``config/<env>.py``,
a ``.env`` file or ``PLANTGATE_*`` environment variables.
"""

config = {
    "app": {
        "name": "PlantGate API",
        "environment": "production",
        "debug": False,
        "url": "http://localhost:8000",
        "api_version": "v1",
        "timezone": "Asia/Kuala_Lumpur",
        "base_path": "",
        "platform": "admin",
        "from_platform": "qa",
        "key": "",
        "middleware": ["security"],
    },
    "administration": {
        "url": "http://localhost:8080",
        "wms_url": "http://localhost:8081",
        "timeout": 10.0,
        "verify_tls": True,
    },
    "database": {
        "default": "default",
        "connections": {
            "default": {"url": "sqlite:///plantgate.db"},
        },
    },
    "cors": {
        "enabled": True,
        "allow_origins": ["*"],
        "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        "allow_headers": ["Origin", "Content-Type", "X-Auth-Token"],
        "allow_credentials": False,
        "max_age": 3600,
    },
    "logging": {
        "level": "INFO",
        "format": "text",
        "file": None,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 8000,
        "reload": False,
        "workers": 1,
    },
}
