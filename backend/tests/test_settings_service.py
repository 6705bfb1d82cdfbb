"""Tests for admin settings and platform analytics."""

from config.constants import ADMIN_SETTINGS, AUDIT_LOGS, ORDERS


class TestSettings:
    async def test_defaults_when_no_row(self, settings_service):
        settings = await settings_service.get_settings()

        assert settings.commission_rate == 15
        assert await settings_service.commission_rate() == 0.15

    async def test_only_admin_may_update(self, settings_service, gateway, buyer, seller):
        assert (await settings_service.update_settings(None, {"tagline": "x"})).error == "NotAuthenticated"
        assert (await settings_service.update_settings(buyer, {"tagline": "x"})).error == "Unauthorized"
        assert (await settings_service.update_settings(seller, {"tagline": "x"})).error == "Unauthorized"
        assert gateway.rows(ADMIN_SETTINGS) == []

    async def test_update_is_upsert_and_audited(self, settings_service, gateway, admin):
        assert (await settings_service.update_settings(admin, {"commission_rate": 10})).success
        assert (await settings_service.update_settings(admin, {"tagline": "Grow with Leafora"})).success

        assert len(gateway.rows(ADMIN_SETTINGS)) == 1
        settings = await settings_service.get_settings()
        assert settings.commission_rate == 10
        assert settings.tagline == "Grow with Leafora"

        audits = gateway.rows(AUDIT_LOGS)
        assert [a["action"] for a in audits] == ["ADMIN_SETTINGS_UPDATED"] * 2
        assert audits[0]["actor_id"] == admin.id
        assert audits[0]["metadata"] == {"fields": ["commission_rate"]}

    async def test_rejects_bad_values(self, settings_service, admin):
        assert (await settings_service.update_settings(admin, {"commission_rate": 150})).error == "ValidationFailed"
        assert (await settings_service.update_settings(admin, {"unknown": 1})).error == "ValidationFailed"

    async def test_featured_categories_must_exist(self, settings_service, gateway, admin):
        result = await settings_service.update_settings(admin, {"featured_categories": ["Knitting"]})
        assert result.error == "ValidationFailed"

        result = await settings_service.update_settings(admin, {"featured_categories": ["Translation"]})
        assert result.success
        assert (await settings_service.get_settings()).featured_categories == ["Translation"]

    async def test_empty_update_is_rejected_without_audit(self, settings_service, gateway, admin):
        result = await settings_service.update_settings(admin, {})

        assert result.error == "ValidationFailed"
        assert result.message == "Nothing to update"
        assert gateway.rows(AUDIT_LOGS) == []
        assert gateway.rows(ADMIN_SETTINGS) == []


class TestAnalytics:
    async def test_counts(self, settings_service, orders, buyer, seller, admin, seed_service):
        sid = await seed_service(seller.id, price_basic=100.0)
        await seed_service(seller.id, status="paused")

        done = (await orders.create_order({"service_id": sid, "buyer_id": buyer.id, "package": "basic"})).id
        for status in ("in_progress", "delivered", "completed"):
            await orders.update_order_status(done, status)
        dropped = (await orders.create_order({"service_id": sid, "buyer_id": buyer.id, "package": "basic"})).id
        await orders.update_order_status(dropped, "cancelled")

        analytics = await settings_service.get_analytics()

        assert analytics.total_users == 3
        assert analytics.total_sellers == 1
        assert analytics.total_orders == 2
        assert analytics.completed_orders == 1
        assert analytics.total_revenue == 100.0
        assert analytics.platform_earnings == 15.0
        assert analytics.active_services == 1

    async def test_failure_returns_zeros(self, settings_service, gateway):
        gateway.fail(ORDERS, "select")

        analytics = await settings_service.get_analytics()

        assert analytics.total_orders == 0
        assert analytics.total_revenue == 0.0
