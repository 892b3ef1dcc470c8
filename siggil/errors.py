import logging
from typing import Iterable, Optional

log = logging.getLogger(__name__)


class ShopError(Exception):
    """Базовое исключение магазина"""

    def __init__(self, message: str, *args):
        super().__init__(message, *args)
        self.message = message


class ValidationError(ShopError):
    """Ошибки полей формы; до backend'а не доходят"""

    def __init__(self, errors: Iterable[str]):
        self.errors = tuple(errors)
        super().__init__(", ".join(self.errors))


class BackendError(ShopError):
    """Сбой удалённого хранилища (сеть, драйвер, отсутствие конфигурации)"""

    def __init__(self, message: str, table: Optional[str] = None):
        self.table = table
        super().__init__(f"{table}: {message}" if table else message)


class PaymentError(ShopError):
    """Отказ в оплате"""

    def __init__(self, message: str = "Échec du paiement. Veuillez réessayer."):
        super().__init__(message)


class AuthError(ShopError):
    def __init__(
        self,
        message: str = "Numéro de téléphone ou mot de passe administrateur incorrect.",
    ):
        super().__init__(message)
        log.warning("auth rejected: %s", message)
