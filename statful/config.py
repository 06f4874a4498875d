"""
Configuration settings for the Statful client.
"""
import os


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


# Server configuration
SERVER_URL = os.getenv('STATFUL_URL', 'https://api.statful.com')
BASE_PATH = os.getenv('STATFUL_BASE_PATH', '')
API_TOKEN = os.getenv('STATFUL_API_TOKEN', '')

# Transport configuration ('http' or 'udp')
TRANSPORT = os.getenv('STATFUL_TRANSPORT', 'http')
UDP_ADDRESS = os.getenv('STATFUL_UDP_ADDRESS', '127.0.0.1:2013')
NO_COMPRESSION = _env_bool('STATFUL_NO_COMPRESSION')

# HTTP client configuration
REQUEST_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
RETRY_DELAY = 5  # seconds
UDP_TIMEOUT = 2  # seconds
UDP_MAX_DATAGRAM_SIZE = 32 * 1024  # bytes, batches are split on line boundaries

# Buffer configuration
DRY_RUN = _env_bool('STATFUL_DRY_RUN')
FLUSH_SIZE = int(os.getenv('STATFUL_FLUSH_SIZE', '1000'))  # records
FLUSH_INTERVAL = float(os.getenv('STATFUL_FLUSH_INTERVAL', '10'))  # seconds, 0 disables
DISABLE_AUTO_FLUSH = _env_bool('STATFUL_DISABLE_AUTO_FLUSH')

# Global tags in "key=value,key2=value2" form
TAGS = os.getenv('STATFUL_TAGS', '')

# Logging configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
