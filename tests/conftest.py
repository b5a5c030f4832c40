"""
Pytest 配置和共享 fixtures
"""
import pytest

from hotel_manage.config import Settings
from hotel_manage.database import Database
from hotel_manage.services.credential_service import CredentialService
from hotel_manage.services.event_bus import EventBus
from hotel_manage.services.rbac_service import PermissionService, RoleService
from hotel_manage.services.tenant_service import TenantService


@pytest.fixture
def settings(tmp_path):
    """测试设置（低成本 bcrypt，不写日志文件）"""
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        BCRYPT_ROUNDS=4,
        DATABASE_URL="sqlite://",
        LOG_DIR=str(tmp_path / "logs"),
    )


@pytest.fixture(scope="function")
def database(tmp_path, settings):
    """文件型 SQLite 存储句柄（多个会话各自独立连接）"""
    db = Database(url=f"sqlite:///{tmp_path / 'hotel.db'}", settings=settings)
    db.create_all()
    yield db
    db.close()


@pytest.fixture(scope="function")
def db_session(database):
    """创建数据库会话"""
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def event_bus():
    return EventBus()


# ============== 服务 Fixtures ==============

@pytest.fixture
def tenants(db_session, settings):
    return TenantService(db_session, settings)


@pytest.fixture
def credentials(db_session, settings):
    return CredentialService(db_session, settings)


@pytest.fixture
def roles(db_session, event_bus):
    return RoleService(db_session, event_bus)


@pytest.fixture
def permissions(db_session, event_bus):
    return PermissionService(db_session, event_bus)


# ============== 数据 Fixtures ==============

@pytest.fixture
def customer(tenants):
    """一个租户"""
    return tenants.create_customer("Hotel Alpha", "ALPHA", 1, fiscal_number="B12345678")


@pytest.fixture
def user(credentials, customer):
    """租户下的一个用户（密码 s3cret-pass）"""
    return credentials.create_user(customer.customer_id, "alice", "s3cret-pass", "Alice", "Smith")
