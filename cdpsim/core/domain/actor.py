"""Actor — идентичность, от имени которой выполняются действия."""

from pydantic import BaseModel, Field


class Actor(BaseModel):
    """
    Стабильная идентичность (address-equivalent).

    Подпись транзакций принадлежит SUT endpoint; протокольного состояния
    актор не хранит, на него только ссылаются записи позиций и стейков.
    """

    label: str = Field(..., min_length=1, description="Роль актора (Borrower, Liquidator, ...)")
    address: str = Field(..., min_length=1)

    model_config = {"frozen": True}
