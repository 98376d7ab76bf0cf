"""Винятки конвеєра аналізу"""


class DefenceError(Exception):
    """Базовий виняток nginx-ip-defence."""
    pass


class InputValidationError(DefenceError):
    """Порожня колекція, порожній шлях або інший некоректний аргумент."""
    pass


class InvalidAddressError(InputValidationError):
    """Рядок не є IPv4 адресою."""
    pass


class MalformedLineError(InputValidationError):
    """Рядок логу без придатної дати."""
    pass


class ExternalProcessError(DefenceError):
    """Помилка whois-запиту або команди reload."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class FilesystemError(DefenceError):
    """Немає каталогу, не читається лог або не вдався запис звіту."""
    pass
