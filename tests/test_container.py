import pytest

from planner_admin.core.config import DatabaseSettings, Settings
from planner_admin.core.container import create_container
from planner_admin.modules.directory.models import AdminPrincipal


def test_settings_read_nested_environment(monkeypatch):
    monkeypatch.setenv("DATABASE__URL", "sqlite+aiosqlite:///./other.db")
    monkeypatch.setenv("STORE__TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("DIRECTORY__BATCH_SIZE", "50")

    settings = Settings()

    assert settings.database_url == "sqlite+aiosqlite:///./other.db"
    assert settings.store_timeout == 2.5
    assert settings.directory.batch_size == 50


@pytest.mark.asyncio
async def test_container_wires_a_working_directory(tmp_path):
    settings = Settings(database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'wired.db'}"))
    container = create_container(settings)
    await container.init_infrastructure()
    try:
        directory = container.build_directory()
        await directory.set_maintenance_mode(AdminPrincipal(admin_id="root"), True)

        page = await directory.list_users()
        config = await directory.get_system_config()

        assert page.records == []
        assert config.maintenance_mode is True
    finally:
        await container.dispose()
