from pydantic_settings import BaseSettings

from trellowatch.common.exceptions import ConfigurationError

REQUIRED_SETTINGS = ("TRELLO_BOARD_ID", "TRELLO_KEY", "TRELLO_TOKEN", "HOST", "PORT")


class Settings(BaseSettings):
    # Trello
    TRELLO_BOARD_ID: str = ""
    TRELLO_KEY: str = ""
    TRELLO_TOKEN: str = ""
    TRELLO_API_URL: str = "https://api.trello.com/1"
    TRELLO_TIMEOUT: float = 30.0

    # Server
    HOST: str = ""
    PORT: int = 0
    CALLBACK_SCHEME: str = "https"
    STARTUP_DELAY_SECONDS: float = 1.0

    # Logging
    LOG_DIR: str = "./log/"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}

    def missing(self) -> list[str]:
        return [name for name in REQUIRED_SETTINGS if not getattr(self, name)]

    def require(self) -> None:
        missing = self.missing()
        if missing:
            raise ConfigurationError(
                f"The board id, Trello key and token, host, and port are all required (missing: {', '.join(missing)})"
            )


settings = Settings()
