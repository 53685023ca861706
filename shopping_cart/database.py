from sqlmodel import SQLModel, create_engine, Session

from shopping_cart.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Cart storage connection
#
# - SQLite (default): allow the connection to be shared across
#   FastAPI's threadpool workers.
# - Anything else : small pool, validate connections before use.
# ---------------------------------------------------------

db_url = settings.DATABASE_URL

if db_url.startswith("sqlite"):
    engine = create_engine(
        db_url,
        echo=settings.SQL_ECHO,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        db_url,
        echo=settings.SQL_ECHO,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=0,
    )


def create_db_and_tables() -> None:
    """
    Create the cart, catalog and condition tables (no-op for existing ones).

    Run from the app lifespan; tests build their own in-memory schema.
    """
    # Import models so SQLModel metadata is populated before create_all()
    from shopping_cart.models import attributes as _attribute_models  # noqa: F401
    from shopping_cart.models import cart as _cart_models  # noqa: F401
    from shopping_cart.models import catalog as _catalog_models  # noqa: F401
    from shopping_cart.models import condition as _condition_models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """
    Request-scoped DB session dependency.

    One session per request; a ShoppingCart built on it commits or rolls
    back its own save.
    """
    with Session(engine) as session:
        yield session
