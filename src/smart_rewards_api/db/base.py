from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    """Declarative base for Smart Rewards tables; names default to the lowercased class."""

    @declared_attr.directive
    def __tablename__(cls) -> str:  # noqa: N805
        return cls.__name__.lower()


# Register every model on Base.metadata for Alembic and create_all
import smart_rewards_api.models  # noqa: E402,F401
