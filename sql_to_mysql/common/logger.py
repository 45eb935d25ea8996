import logging
import os


class Logger:
    def __init__(self) -> None:
        self.logger = logging.getLogger("ETL")
        self.logger.setLevel(logging.INFO)
        if not self.logger.handlers:
            self.__add_console_handler()

    @staticmethod
    def __formatter() -> logging.Formatter:
        return logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
        )

    @staticmethod
    def __add_console_handler() -> None:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(Logger.__formatter())
        logging.getLogger("ETL").addHandler(console_handler)

    def add_file_handler(self, path: str) -> None:
        """Append every record to a plain-text log file (one handler per path)."""
        path = os.path.abspath(path)
        for handler in self.logger.handlers:
            if isinstance(handler, logging.FileHandler) and handler.baseFilename == path:
                return
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(Logger.__formatter())
        self.logger.addHandler(file_handler)

    def info(self, msg: str, *args, **kwargs) -> None:
        self.logger.info(msg, *args, **kwargs)

    def success(self, msg: str, *args, **kwargs) -> None:
        self.logger.info("✅ " + msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self.logger.error(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self.logger.warning(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs) -> None:
        self.logger.debug(msg, *args, **kwargs)


# Shared instance for the whole package
logger = Logger()
