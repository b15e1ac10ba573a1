from svckit.db.session import create_session_factory
from svckit.db.transaction import SqlAlchemyTransactionManager, TransactionManager

__all__ = [
    'create_session_factory',
    'SqlAlchemyTransactionManager',
    'TransactionManager',
]
