"""Tests for the Azure DNS challenge provider."""

import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from dnsprovider.azure_dns import AzureDnsProvider, DnsProviderConfig
from dnsprovider.errors import DnsProviderError, PropagationTimeoutError
from dnsprovider.models import DELETE, UPSERT, DnsZone
from dnsprovider.records import challenge_record

KEY_AUTH = "token-abc.thumbprint-xyz"
ZONE_ID = "/subscriptions/sub-1/resourceGroups/rg1/providers/Microsoft.Network/dnszones/example.com"


def _zone(name, rg="rg1", sub="sub-1", zone_type="Public"):
    return SimpleNamespace(
        name=name,
        id=f"/subscriptions/{sub}/resourceGroups/{rg}/providers/Microsoft.Network/dnszones/{name}",
        name_servers=["ns1-01.azure-dns.com.", "ns2-01.azure-dns.net."],
        zone_type=zone_type,
    )


class FakeRecordSets:
    """In-memory stand-in for DnsManagementClient.record_sets."""

    def __init__(self):
        self.records = {}
        self.calls = []

    def get(self, resource_group, zone_name, name, record_type):
        key = (resource_group, zone_name, name, record_type)
        if key not in self.records:
            raise ResourceNotFoundError("The resource record was not found")
        return self.records[key]

    def create_or_update(self, resource_group, zone_name, name, record_type, parameters):
        self.calls.append(("upsert", zone_name, name))
        self.records[(resource_group, zone_name, name, record_type)] = parameters
        return parameters

    def delete(self, resource_group, zone_name, name, record_type):
        self.calls.append(("delete", zone_name, name))
        self.records.pop((resource_group, zone_name, name, record_type), None)

    def values(self, zone_name, name, resource_group="rg1"):
        record_set = self.records.get((resource_group, zone_name, name, "TXT"))
        if record_set is None:
            return []
        return ["".join(txt.value) for txt in record_set.txt_records]


class FakeZones:

    def __init__(self, zones):
        self._zones = zones
        self.list = MagicMock(side_effect=lambda: list(self._zones))
        self.list_by_resource_group = MagicMock(
            side_effect=lambda rg: [z for z in self._zones if f"/resourceGroups/{rg}/" in z.id]
        )

    def get(self, resource_group, name):
        for zone in self._zones:
            if zone.name == name and f"/resourceGroups/{resource_group}/" in zone.id:
                return zone
        raise ResourceNotFoundError(f"zone {name} not found")


class AzureDnsProviderTestCase(unittest.TestCase):

    def setUp(self):
        self.record_sets = FakeRecordSets()
        self.zones = FakeZones([_zone("example.com"), _zone("sub.example.com")])
        self.client = SimpleNamespace(record_sets=self.record_sets, zones=self.zones)
        self.checker = MagicMock()
        self.checker.is_synchronized.return_value = True

    def _provider(self, config=None, subscription_id="sub-1", **kwargs):
        return AzureDnsProvider(
            credential=MagicMock(),
            subscription_id=subscription_id,
            config=config or DnsProviderConfig(polling_interval=1, propagation_timeout=5),
            checker=self.checker,
            client_factory=lambda sub_id: self.client,
            sleep=lambda seconds: None,
            **kwargs,
        )


class TestPresent(AzureDnsProviderTestCase):

    def test_present_creates_txt_record(self):
        self._provider().present("www.example.com", "token-abc", KEY_AUTH)

        _, value = challenge_record("www.example.com", KEY_AUTH)
        self.assertEqual(self.record_sets.values("example.com", "_acme-challenge.www"), [value])
        change = self.checker.is_synchronized.call_args[0][0]
        self.assertEqual(change.action, UPSERT)
        self.assertEqual(change.fqdn, "_acme-challenge.www.example.com.")
        self.assertEqual(change.values, [value])

    def test_present_uses_configured_ttl(self):
        config = DnsProviderConfig(ttl=30, propagation_timeout=5, polling_interval=1)
        self._provider(config=config).present("www.example.com", "t", KEY_AUTH)
        record_set = self.record_sets.records[("rg1", "example.com", "_acme-challenge.www", "TXT")]
        self.assertEqual(record_set.ttl, 30)

    def test_present_is_idempotent(self):
        provider = self._provider()
        provider.present("www.example.com", "token-abc", KEY_AUTH)
        provider.present("www.example.com", "token-abc", KEY_AUTH)

        _, value = challenge_record("www.example.com", KEY_AUTH)
        self.assertEqual(self.record_sets.values("example.com", "_acme-challenge.www"), [value])

    def test_present_keeps_existing_values(self):
        provider = self._provider()
        provider.present("example.com", "t1", "first.key-auth")
        provider.present("*.example.com", "t2", "second.key-auth")

        values = self.record_sets.values("example.com", "_acme-challenge")
        self.assertEqual(len(values), 2)
        self.assertEqual(values[0], challenge_record("example.com", "first.key-auth")[1])
        self.assertEqual(values[1], challenge_record("example.com", "second.key-auth")[1])

    def test_present_waits_for_sync(self):
        self.checker.is_synchronized.side_effect = [False, False, True]
        self._provider().present("www.example.com", "t", KEY_AUTH)
        self.assertEqual(self.checker.is_synchronized.call_count, 3)

    def test_present_times_out(self):
        self.checker.is_synchronized.return_value = False
        clock = SimpleNamespace(now=0.0)

        def sleep(seconds):
            clock.now += seconds

        provider = self._provider(clock=lambda: clock.now)
        provider._sleep = sleep
        with self.assertRaises(PropagationTimeoutError):
            provider.present("www.example.com", "t", KEY_AUTH)

    def test_poll_error_aborts(self):
        self.checker.is_synchronized.side_effect = DnsProviderError("timed out")
        with self.assertRaises(DnsProviderError) as ctx:
            self._provider().present("www.example.com", "t", KEY_AUTH)
        self.assertNotIsInstance(ctx.exception, PropagationTimeoutError)
        self.assertEqual(self.checker.is_synchronized.call_count, 1)

    def test_present_api_error(self):
        self.record_sets.create_or_update = MagicMock(side_effect=HttpResponseError("throttled"))
        with self.assertRaises(DnsProviderError) as ctx:
            self._provider().present("www.example.com", "t", KEY_AUTH)
        self.assertIn("failed to change record set", str(ctx.exception))

    def test_present_unknown_zone(self):
        with self.assertRaises(DnsProviderError) as ctx:
            self._provider().present("www.example.org", "t", KEY_AUTH)
        self.assertIn("failed to determine DNS zone", str(ctx.exception))
        self.assertEqual(self.record_sets.calls, [])


class TestCleanup(AzureDnsProviderTestCase):

    def test_present_then_cleanup_leaves_no_record(self):
        provider = self._provider()
        provider.present("www.example.com", "t", KEY_AUTH)
        provider.cleanup("www.example.com", "t", KEY_AUTH)

        self.assertEqual(self.record_sets.values("example.com", "_acme-challenge.www"), [])
        change = self.checker.is_synchronized.call_args[0][0]
        self.assertEqual(change.action, DELETE)

    def test_cleanup_without_record_is_noop(self):
        self._provider().cleanup("www.example.com", "t", KEY_AUTH)
        self.assertEqual(self.record_sets.calls, [])
        self.checker.is_synchronized.assert_not_called()

    def test_cleanup_deletes_full_record_set(self):
        provider = self._provider()
        provider.present("example.com", "t1", "first.key-auth")
        provider.present("*.example.com", "t2", "second.key-auth")
        provider.cleanup("example.com", "t1", "first.key-auth")

        self.assertEqual(self.record_sets.values("example.com", "_acme-challenge"), [])
        change = self.checker.is_synchronized.call_args[0][0]
        self.assertEqual(len(change.values), 2)


class TestZoneResolution(AzureDnsProviderTestCase):

    def test_most_specific_zone_wins(self):
        zone = self._provider().get_zone("_acme-challenge.www.sub.example.com.")
        self.assertEqual(zone.name, "sub.example.com")

    def test_parent_zone(self):
        zone = self._provider().get_zone("_acme-challenge.www.example.com.")
        self.assertEqual(zone.name, "example.com")
        self.assertEqual(zone.resource_group, "rg1")
        self.assertEqual(zone.subscription_id, "sub-1")
        self.assertEqual(len(zone.name_servers), 2)

    def test_private_zones_are_skipped(self):
        self.zones._zones = [_zone("example.com", zone_type="Private")]
        with self.assertRaises(DnsProviderError):
            self._provider().get_zone("_acme-challenge.example.com.")

    def test_configured_zone_id_overrides_discovery(self):
        self.zones._zones.append(_zone("www.example.com"))
        provider = self._provider(config=DnsProviderConfig(zone_id=ZONE_ID))

        zone = provider.get_zone("_acme-challenge.www.example.com.")

        self.assertEqual(zone.name, "example.com")
        self.assertEqual(zone.resource_group, "rg1")
        self.zones.list.assert_not_called()

    def test_configured_zone_name(self):
        provider = self._provider(
            config=DnsProviderConfig(zone_name="example.com", resource_group="rg1"),
        )
        zone = provider.get_zone("_acme-challenge.www.sub.example.com.")
        self.assertEqual(zone.name, "example.com")
        self.zones.list.assert_not_called()
        self.zones.list_by_resource_group.assert_not_called()

    def test_configured_zone_name_requires_resource_group(self):
        provider = self._provider(config=DnsProviderConfig(zone_name="example.com"))
        with self.assertRaises(DnsProviderError):
            provider.get_zone("_acme-challenge.example.com.")

    def test_configured_zone_outside_domain(self):
        provider = self._provider(config=DnsProviderConfig(zone_id=ZONE_ID))
        with self.assertRaises(DnsProviderError):
            provider.present("www.example.org", "t", KEY_AUTH)

    def test_resource_group_filter(self):
        self.zones._zones.append(_zone("example.net", rg="rg2"))
        provider = self._provider(config=DnsProviderConfig(resource_group="rg2"))
        zones = provider.list_zones()
        self.assertEqual([z.name for z in zones], ["example.net"])
        self.zones.list_by_resource_group.assert_called_once_with("rg2")

    def test_list_zones_across_subscriptions(self):
        provider = self._provider(subscription_id="")
        with patch.object(provider, "list_subscriptions", return_value=["sub-a", "sub-b"]):
            zones = provider.list_zones()
        self.assertEqual({z.subscription_id for z in zones}, {"sub-a", "sub-b"})
        self.assertEqual(len(zones), 4)

    def test_list_zones_no_subscriptions(self):
        provider = self._provider(subscription_id="")
        with patch.object(provider, "list_subscriptions", return_value=[]):
            self.assertEqual(provider.list_zones(), [])

    def test_list_zones_api_error(self):
        self.zones.list.side_effect = HttpResponseError("forbidden")
        with self.assertRaises(DnsProviderError):
            self._provider().list_zones()


class TestResourceIds(unittest.TestCase):

    def test_extract_resource_group(self):
        rid = "/subscriptions/sub-123/resourceGroups/my-rg/providers/Microsoft.Network/dnszones/example.com"
        self.assertEqual(AzureDnsProvider._extract_resource_group(rid), "my-rg")

    def test_extract_resource_group_empty(self):
        self.assertEqual(AzureDnsProvider._extract_resource_group(""), "")

    def test_parse_zone_id(self):
        self.assertEqual(
            AzureDnsProvider._parse_zone_id(ZONE_ID), ("sub-1", "rg1", "example.com"),
        )

    def test_parse_zone_id_rejects_other_resources(self):
        with self.assertRaises(DnsProviderError):
            AzureDnsProvider._parse_zone_id("/subscriptions/s/resourceGroups/rg/providers/Microsoft.Web/sites/x")

    def test_zone_dataclass(self):
        zone = DnsZone(name="example.com", resource_group="rg1")
        self.assertEqual(zone.name_servers, [])
        self.assertFalse(zone.is_private)


if __name__ == "__main__":
    unittest.main()
