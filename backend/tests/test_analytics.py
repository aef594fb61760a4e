"""Tests for lead statistics and SLA performance."""

from datetime import timedelta

from leadflow.services.analytics import lead_statistics, sla_performance

from support import T0, VALID_LEAD, make_service


class TestLeadStatistics:
    def setup_method(self):
        self.service, self.clock = make_service()
        self.a = self.service.create(dict(VALID_LEAD)).lead
        self.b = self.service.create({**VALID_LEAD, "intent": "buying", "source": "referral"}).lead
        self.clock.now = T0 + timedelta(hours=10)
        self.service.record_conversion(self.b.id, {"contact_id": "c-1"})

    def test_counts_and_rates(self):
        stats = lead_statistics(self.service.all_leads(), self.clock.now)
        assert stats.total == 2
        assert stats.by_status["new"] == 1
        assert stats.by_status["converted"] == 1
        assert stats.by_intent["buying"] == 1
        assert stats.by_source == {"other": 1, "referral": 1}
        assert stats.conversion_rate == 50
        assert stats.average_time_to_conversion == 10

    def test_archiving_keeps_conversion_rate(self):
        self.service.archive(self.b.id)
        stats = lead_statistics(self.service.all_leads(), self.clock.now)
        assert stats.by_status["archived"] == 1
        assert stats.conversion_rate == 50

    def test_empty(self):
        stats = lead_statistics([], T0)
        assert stats.total == 0
        assert stats.conversion_rate == 0


class TestSLAPerformance:
    def test_alert_breakdown(self):
        service, clock = make_service()
        lead = service.create(dict(VALID_LEAD)).lead
        service.refresh_sla(lead.id, T0 + timedelta(hours=30))
        perf = sla_performance(service.all_leads(), T0 + timedelta(hours=30))
        assert perf.total_leads == 1
        assert perf.sla_violated == 1
        assert perf.compliance_rate == 0
        assert perf.alerts_by_type["first-contact-overdue"] == 1
        assert perf.alerts_by_type["qualification-overdue"] == 1
        assert perf.alerts_by_type["conversion-overdue"] == 0
