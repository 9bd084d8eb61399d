SERVICE_NAME = "agui-server"
SERVICE_VERSION = "0.1.0"
