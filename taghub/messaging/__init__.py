from .console import ConsoleMessagingClient
from .credentials import (
    ConnectionString,
    build_connection_string,
    generate_sas_token,
    parse_connection_string,
)
from .iothub import IoTHubMqttClient

__all__ = ["ConnectionString",
           "ConsoleMessagingClient",
           "IoTHubMqttClient",
           "build_connection_string",
           "generate_sas_token",
           "parse_connection_string"]
