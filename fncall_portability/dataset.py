"""
決済トランザクションのデータセット（読み取り専用）
"""

from types import MappingProxyType
from typing import Union

from .types import Transaction, Status, TransactionNotFound


DATASET = MappingProxyType({
    Transaction("001"): Status("pending"),
    Transaction("002"): Status("approved"),
    Transaction("003"): Status("rejected"),
})


def lookup_status(transaction: Transaction) -> Union[Status, TransactionNotFound]:
    """
    トランザクションのステータスを取得

    Returns:
        Status: 登録済みの場合
        TransactionNotFound: 未登録の場合（Noneは返さない）
    """
    status = DATASET.get(transaction)
    if status is None:
        return TransactionNotFound(transaction)
    return status
