"""
JSON schemas for configuration file validation.
"""

_PORT = {"type": "integer", "minimum": 1, "maximum": 65535}
_NULLABLE_STRING = {"type": ["string", "null"]}

FEATURES_SCHEMA = {
    "type": "object",
    "properties": {
        "enable_milvus": {"type": "boolean"},
        "enable_redis": {"type": "boolean"},
    },
    "additionalProperties": False,
}

MILVUS_SCHEMA = {
    "type": "object",
    "properties": {
        "host": {"type": "string", "minLength": 1},
        "port": _PORT,
        "username": _NULLABLE_STRING,
        "password": _NULLABLE_STRING,
        "db": _NULLABLE_STRING,
        "container_name": _NULLABLE_STRING,
        "warmup_retries": {"type": "integer", "minimum": 0},
        "warmup_backoff": {"type": "number", "minimum": 0.0},
        "probe_timeout": {"type": "number", "exclusiveMinimum": 0.0},
        "call_timeout": {"type": "number", "exclusiveMinimum": 0.0},
        "ssl": {"type": "boolean"},
        "tls_ca_pem_path": _NULLABLE_STRING,
        "client_cert_path": _NULLABLE_STRING,
        "client_key_path": _NULLABLE_STRING,
        "sni_servername": _NULLABLE_STRING,
    },
    "additionalProperties": False,
}

REDIS_SCHEMA = {
    "type": "object",
    "properties": {
        "host": {"type": "string"},
        "port": _PORT,
        "password": _NULLABLE_STRING,
        "db": {"type": "integer", "minimum": 0},
        "socket_path": _NULLABLE_STRING,
        "socket_timeout": {"type": "number", "exclusiveMinimum": 0.0},
        "connect_timeout": {"type": "number", "exclusiveMinimum": 0.0},
    },
    "additionalProperties": False,
}

DOCKER_SCHEMA = {
    "type": "object",
    "properties": {
        "socket_path": {"type": "string"},
        "host": _NULLABLE_STRING,
        "timeout": {"type": "number", "exclusiveMinimum": 0.0},
    },
    "additionalProperties": False,
}

CONTAINERS_SCHEMA = {
    "type": "object",
    "properties": {
        "containers": {"type": "array", "items": {"type": "string", "minLength": 1}},
    },
    "additionalProperties": False,
}

AUTH_SCHEMA = {
    "type": "object",
    "properties": {
        "enabled": {"type": "boolean"},
        "jwt_secret_base64": _NULLABLE_STRING,
        "issuer": {"type": "string"},
        "audience": {"type": "string"},
        "token_ttl_seconds": {"type": "integer", "minimum": 1},
        "leeway_seconds": {"type": "integer", "minimum": 0},
    },
    "additionalProperties": False,
}

SERVER_SCHEMA = {
    "type": "object",
    "properties": {
        "host": {"type": "string"},
        "port": _PORT,
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "log_file": _NULLABLE_STRING,
        "include_timestamp": {"type": "boolean"},
        "log_probes": {"type": "boolean"},
        "log_actions": {"type": "boolean"},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "features": FEATURES_SCHEMA,
        "milvus": MILVUS_SCHEMA,
        "redis": REDIS_SCHEMA,
        "docker": DOCKER_SCHEMA,
        "containers": CONTAINERS_SCHEMA,
        "auth": AUTH_SCHEMA,
        "server": SERVER_SCHEMA,
        "logging": LOGGING_SCHEMA,
    },
    "additionalProperties": False,
}
