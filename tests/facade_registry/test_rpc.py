"""Tests for rpc registration tables, MethodDescriptor and the introspector."""

import pytest

from facade_registry import (
    DuplicateMethodError,
    IntrospectionError,
    MethodDescriptor,
    RpcEntry,
    RpcParameter,
    RpcReceiver,
    collect_from,
    rpc,
)
from facade_fixtures import AndroidFacade, BluetoothLeScanFacade, WebCamFacade


class TestRpcTable:

    def test_table_follows_declaration_order(self):
        assert [e.name for e in AndroidFacade.rpc_table] == [
            "make_toast", "vibrate", "get_input", "get_screen_timeout",
        ]

    def test_explicit_entries_are_collected(self):
        names = [e.name for e in BluetoothLeScanFacade.rpc_table]
        assert names == ["ble_start_scan", "ble_stop_scan"]

    def test_undecorated_methods_are_not_exposed(self):
        class Facade(RpcReceiver):
            @rpc("exposed")
            def exposed(self):
                pass

            def helper(self):
                pass

        assert [e.name for e in Facade.rpc_table] == ["exposed"]

    def test_name_override(self):
        class Facade(RpcReceiver):
            @rpc(name="scanStart")
            def scan_start(self):
                pass

        assert Facade.rpc_table[0].name == "scanStart"
        assert Facade.rpc_table[0].handler is Facade.__dict__["scan_start"]

    def test_replacement_implies_deprecated(self):
        entry = AndroidFacade.rpc_table[2]
        assert entry.deprecated is True
        assert entry.replacement == "dialog_get_input"

    def test_duplicate_name_within_facade_rejected(self):
        with pytest.raises(DuplicateMethodError) as exc_info:
            class Facade(RpcReceiver):
                @rpc(name="start")
                def start_a(self):
                    pass

                @rpc(name="start")
                def start_b(self):
                    pass

        assert exc_info.value.method_name == "start"
        assert exc_info.value.error_code == "REGISTRY_003"

    def test_subclass_inherits_and_overrides(self):
        class Base(RpcReceiver):
            @rpc("base a")
            def a(self):
                pass

            @rpc("base b")
            def b(self):
                pass

        class Child(Base):
            @rpc("child b")
            def b(self):
                pass

            @rpc("child c")
            def c(self):
                pass

        assert [(e.name, e.description) for e in Child.rpc_table] == [
            ("a", "base a"), ("b", "child b"), ("c", "child c"),
        ]
        assert [e.name for e in Base.rpc_table] == ["a", "b"]

    def test_multiple_facade_bases_are_merged(self):
        class WifiFacade(RpcReceiver):
            @rpc("wifi scan")
            def wifi_scan(self):
                pass

            @rpc("wifi status")
            def status(self):
                pass

        class BtFacade(RpcReceiver):
            @rpc("bt scan")
            def bt_scan(self):
                pass

            @rpc("bt status")
            def status(self):
                pass

        class ComboFacade(WifiFacade, BtFacade):
            @rpc("combo")
            def combo(self):
                pass

        table = {e.name: e.description for e in ComboFacade.rpc_table}
        assert table == {
            "bt_scan": "bt scan", "status": "wifi status", "wifi_scan": "wifi scan", "combo": "combo",
        }
        assert [d.name for d in collect_from(ComboFacade)][-1] == "combo"

    def test_diamond_keeps_most_derived_override(self):
        class Base(RpcReceiver):
            @rpc("base")
            def ping(self):
                pass

        class Override(Base):
            @rpc("override")
            def ping(self):
                pass

        class Plain(Base):
            pass

        class Diamond(Plain, Override):
            pass

        assert [(e.name, e.description) for e in Diamond.rpc_table] == [("ping", "override")]

    @pytest.mark.parametrize("kwargs", [
        {"min_sdk_level": -1},
        {"min_sdk_level": "5"},
        {"min_sdk_level": True},
        {"start_event": ""},
        {"stop_event": ""},
        {"parameters": ["message"]},
        {"name": ""},
        {"deprecated": "no"},
        {"deprecated": 1},
    ])
    def test_malformed_metadata_rejected_at_class_creation(self, kwargs):
        with pytest.raises(IntrospectionError):
            class Facade(RpcReceiver):
                @rpc("bad", **kwargs)
                def bad(self):
                    pass

    def test_non_callable_handler_rejected(self):
        with pytest.raises(IntrospectionError, match="not callable"):
            class Facade(RpcReceiver):
                rpc_entries = (RpcEntry("broken", None),)


class TestCollectFrom:

    def test_descriptor_per_entry(self):
        descriptors = collect_from(AndroidFacade)
        assert [d.name for d in descriptors] == [e.name for e in AndroidFacade.rpc_table]
        assert all(d.facade is AndroidFacade for d in descriptors)

    def test_metadata_is_carried_over(self):
        webcam_start = collect_from(WebCamFacade)[0]
        assert webcam_start.start_event_name == "webcam"
        assert webcam_start.stop_event_name is None
        assert webcam_start.parameter_types == (int, int)
        assert webcam_start.returns == "str"

    def test_rejects_non_facade(self):
        class NotAFacade:
            pass

        with pytest.raises(IntrospectionError):
            collect_from(NotAFacade)

        with pytest.raises(IntrospectionError):
            collect_from("AndroidFacade")

    def test_rejects_hand_edited_table_with_duplicates(self):
        class Facade(RpcReceiver):
            @rpc()
            def ping(self):
                pass

        Facade.rpc_table = Facade.rpc_table * 2

        with pytest.raises(DuplicateMethodError):
            collect_from(Facade)

    def test_is_pure(self):
        assert collect_from(AndroidFacade) == collect_from(AndroidFacade)


class TestMethodDescriptor:

    def test_is_immutable(self):
        descriptor = collect_from(AndroidFacade)[0]
        with pytest.raises(AttributeError):
            descriptor.name = "other"

    @pytest.mark.parametrize("deprecated,min_level,sdk_level,expected", [
        (False, None, 1, True),
        (False, 5, 4, False),
        (False, 5, 5, True),
        (True, None, 30, False),
        (True, 5, 30, False),
    ])
    def test_is_supported(self, deprecated, min_level, sdk_level, expected):
        descriptor = MethodDescriptor(
            name="m", facade=AndroidFacade, handler=lambda: None,
            deprecated=deprecated, min_sdk_level=min_level,
        )
        assert descriptor.is_supported(sdk_level) is expected

    def test_help_for_simple_method(self):
        descriptor = collect_from(AndroidFacade)[0]
        assert descriptor.help() == (
            "make_toast(str message: message to show)\n\n"
            "Show a quick notification."
        )

    def test_help_lists_defaults_events_and_returns(self):
        text = collect_from(WebCamFacade)[0].help()
        assert text.startswith("webcam_start(int resolution_level (default=0),\n  int jpeg_quality (default=20))")
        assert "Returns:\n  str" in text
        assert 'Generates "webcam" events.' in text

    def test_help_for_deprecated_method(self):
        text = collect_from(AndroidFacade)[2].help()
        assert "str title: title of the input box (optional)" in text
        assert text.endswith("Deprecated! Please use dialog_get_input instead.")

    def test_help_mentions_min_level(self):
        descriptor = MethodDescriptor(
            name="m", facade=AndroidFacade, handler=lambda: None, min_sdk_level=21,
        )
        assert descriptor.help() == "m()\n\nRequires API Level 21."

    def test_parameter_help(self):
        assert RpcParameter("n", int).help() == "int n"
        assert RpcParameter("n", int, "count", optional=True).help() == "int n: count (optional)"
