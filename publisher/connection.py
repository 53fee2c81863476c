"""
State of the link between this site and the remote content service

The service proves who it is by sending a secret token with every command.
The token is generated the first time it is needed and replaced whenever the
site is disconnected, so a disconnected service cannot reconnect with an old
token.
"""

import uuid
from urllib.parse import quote

from django.conf import settings
from django.utils.crypto import constant_time_compare

from configuration.utils import configuration_value, set_configuration_value

SECRET_TOKEN_KEY = "koala_secret_token"
CONNECTION_KEY = "koala_connection"


def generate_secret_token() -> str:
    token = str(uuid.uuid4())
    set_configuration_value(
        SECRET_TOKEN_KEY,
        token,
        description="Token the remote content service must send with every command",
    )
    return token


def get_secret_token() -> str:
    token = configuration_value(SECRET_TOKEN_KEY, None)
    if not token:
        token = generate_secret_token()
    return token


def check_secret_token(candidate) -> bool:
    if not candidate or not isinstance(candidate, str):
        return False
    return constant_time_compare(candidate, get_secret_token())


def get_connection() -> dict:
    connection = configuration_value(CONNECTION_KEY, {})
    return connection if isinstance(connection, dict) else {}


def is_connected() -> bool:
    return bool(get_connection())


def connect(integration_id: str) -> dict:
    connection = {"integration_id": integration_id}
    set_configuration_value(CONNECTION_KEY, connection)
    return connection


def disconnect():
    set_configuration_value(CONNECTION_KEY, {})
    generate_secret_token()


def connection_url(site_url=None) -> str:
    """
    Address a site owner visits to link this site to their account
    """
    return settings.KOALA_CONNECTION_ENDPOINT.format(
        secret_token=quote(get_secret_token()),
        url=quote(site_url or settings.SITE_URL, safe=""),
    )
