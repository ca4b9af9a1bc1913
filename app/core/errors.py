# app/core/errors.py
# Доменные исключения магазина. Роуты их не ловят — ответы формирует
# обработчик shop_error_handler в app/main.py по таблице ERROR_STATUS_CODES.


class ShopError(Exception):
    """Базовое исключение для всех ошибок магазина."""

    pass


class ValidationError(ShopError):
    """Некорректный ввод: неположительный id, количество и т.п."""

    pass


class NotFoundError(ShopError):
    """Сущность отсутствует или помечена неактивной (soft delete)."""

    def __init__(self, entity: str, entity_id: int | str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID {entity_id} not found")


class InvalidStateError(ShopError):
    """Операция недопустима в текущем состоянии (пустая корзина, отмена отгруженного заказа)."""

    pass


class InsufficientStockError(ShopError):
    """На складе меньше товара, чем запрошено."""

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}, requested: {requested}"
        )


class ConcurrencyConflictError(ShopError):
    """Запись устарела: кто-то изменил строку раньше нас. Запрос можно повторить."""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} was modified concurrently, reload and retry")


class OrderNumberCollisionError(ShopError):
    """Не удалось сгенерировать уникальный номер заказа за отведённое число попыток."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not generate a unique order number after {attempts} attempts")


class AuthenticationError(ShopError):
    """Неверный e-mail или пароль."""

    def __init__(self):
        super().__init__("Incorrect credentials")


def require_positive(value: int, name: str) -> None:
    """Бросает ValidationError для неположительного id или количества."""
    if value is None or value <= 0:
        raise ValidationError(f"Invalid {name}: must be greater than 0")
