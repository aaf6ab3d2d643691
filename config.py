"""Service configuration, read from the environment (and an optional .env file)."""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

SERVICE_NAME = 'pdf-form-service'
SERVICE_VERSION = '1.0.0'
SERVICE_DESCRIPTION = 'Fills and flattens AcroForm PDFs, and lists their form fields.'

DEFAULT_PORT = 80
DEFAULT_HOST = '0.0.0.0'
DEFAULT_ENVIRONMENT = 'development'
MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50MB request bodies


def _env_int(name: str, default: int) -> int:
	raw = os.environ.get(name)
	if raw is None or raw.strip() == '':
		return default
	try:
		return int(raw)
	except ValueError:
		raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
	port: int = DEFAULT_PORT
	host: str = DEFAULT_HOST
	environment: str = DEFAULT_ENVIRONMENT  # display only
	max_content_length: int = MAX_CONTENT_LENGTH
	log_level: str = 'INFO'
	log_file: Optional[str] = None

	@classmethod
	def from_env(cls) -> 'Settings':
		return cls(
			port=_env_int('PORT', DEFAULT_PORT),
			host=os.environ.get('HOST', DEFAULT_HOST),
			environment=os.environ.get('APP_ENV') or os.environ.get('NODE_ENV') or DEFAULT_ENVIRONMENT,
			max_content_length=_env_int('MAX_CONTENT_LENGTH', MAX_CONTENT_LENGTH),
			log_level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
			log_file=os.environ.get('LOG_FILE') or None,
		)
