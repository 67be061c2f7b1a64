from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.payment_gateway import create_gateway_registry
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import GatewayRegistry

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

_gateway_registry = create_gateway_registry(
    ApplicationConfig.GATEWAY_ENDPOINTS, ApplicationConfig.GATEWAY_TIMEOUT_SECONDS
)
_notification_service = create_notification_service(ApplicationConfig.NOTIFICATION_WEBHOOK)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_gateway_registry() -> GatewayRegistry:
    return _gateway_registry


def get_notification_service() -> NotificationService:
    return _notification_service
