"""Tests for filter attribute validation and compilation."""

import itertools

import pytest

from services.agent.filter_builder import VALIDATION_TABLE, FilterAttribute, resolve_configuration
from services.agent.filter_errors import FilterValidationError, InputFormatError, ValidationCode
from services.agent.filter_models import AttributeKind, MatchOperator, PresetKind, TaggingSection

U = TaggingSection.UNTAGGED
S = TaggingSection.SINGLE_TAGGED
D = TaggingSection.DOUBLE_TAGGED
P = TaggingSection.PRESET


def compile_input(kind, text, section=U, operator=MatchOperator.OPTIONAL_ANY):
    attribute = FilterAttribute(section, operator, kind)
    return attribute.set_input(text)


class TestConfiguration:
    @pytest.mark.parametrize(
        "operator, excluded, required",
        [
            (MatchOperator.ATTRIBUTE_EXCLUDE_EACH, True, True),
            (MatchOperator.REQUIRE_ALL, False, True),
            (MatchOperator.OPTIONAL_ANY, False, False),
        ],
    )
    def test_ordinary_operator_flags(self, operator, excluded, required):
        attribute = FilterAttribute(U, operator, AttributeKind.PORT)
        assert attribute.excluded is excluded
        assert attribute.required is required
        assert attribute.excludes_section is False

    @pytest.mark.parametrize("operator", [MatchOperator.ATTRIBUTE_EXCLUDE_EACH, MatchOperator.SECTION_EXCLUDE_ALL])
    def test_section_match_exclusion(self, operator):
        attribute = FilterAttribute(S, operator, AttributeKind.SECTION_MATCH)
        assert attribute.excludes_section
        assert attribute.excluded and attribute.required

    def test_names_and_values_are_accepted(self):
        attribute = FilterAttribute("SingleTagged", "AndAnyOf", "Vlan")
        assert attribute.section is S
        assert attribute.operator is MatchOperator.REQUIRE_ALL
        assert attribute.kind is AttributeKind.VLAN

        attribute = FilterAttribute(2, "oranyof", "port")
        assert attribute.section is D

    @pytest.mark.parametrize(
        "section, operator, kind, code",
        [
            (U, MatchOperator.OPTIONAL_ANY, "bogus", ValidationCode.INVALID_KIND),
            (5, MatchOperator.OPTIONAL_ANY, AttributeKind.PORT, ValidationCode.INVALID_SECTION),
            (U, "sometimes", AttributeKind.PORT, ValidationCode.INVALID_OPERATOR),
            (U, PresetKind.ANY, AttributeKind.PORT, ValidationCode.INVALID_OPERATOR),
            (U, MatchOperator.SECTION_EXCLUDE_ALL, AttributeKind.PORT, ValidationCode.INVALID_OPERATOR),
            (U, MatchOperator.OPTIONAL_ANY, AttributeKind.VLAN, ValidationCode.INVALID_SECTION),
            (P, MatchOperator.OPTIONAL_ANY, AttributeKind.PORT, ValidationCode.INVALID_SECTION),
            (P, PresetKind.CUSTOM, AttributeKind.PRESET, ValidationCode.INVALID_PRESET),
            (P, MatchOperator.OPTIONAL_ANY, AttributeKind.PRESET, ValidationCode.INVALID_PRESET),
            (P, "bogus", AttributeKind.PRESET, ValidationCode.INVALID_PRESET),
            (U, MatchOperator.REQUIRE_ALL, AttributeKind.SECTION_MATCH, ValidationCode.INVALID_UNTAGGED_SECTION_MATCH),
            (U, MatchOperator.ATTRIBUTE_EXCLUDE_EACH, AttributeKind.SECTION_MATCH, ValidationCode.INVALID_UNTAGGED_SECTION_MATCH),
            (P, MatchOperator.OPTIONAL_ANY, AttributeKind.SECTION_MATCH, ValidationCode.INVALID_SECTION),
        ],
    )
    def test_rejected_configurations(self, section, operator, kind, code):
        with pytest.raises(FilterValidationError) as exc_info:
            FilterAttribute(section, operator, kind)
        assert exc_info.value.validation_code is code
        assert exc_info.value.to_dict()["error"] == code.value

    @pytest.mark.parametrize("preset", list(PresetKind))
    def test_preset_kind_outside_preset_section_is_accepted(self, preset):
        attribute = FilterAttribute(S, preset, AttributeKind.PRESET)
        assert attribute.is_preset
        assert attribute.set_input("ignored") == ""

    def test_every_combination_is_accepted_or_explained(self):
        operators = list(MatchOperator) + list(PresetKind)
        for kind, section, operator in itertools.product(AttributeKind, TaggingSection, operators):
            key = (kind, section, operator)
            if key in VALIDATION_TABLE:
                assert resolve_configuration(kind, section, operator)[3] == VALIDATION_TABLE[key]
            else:
                with pytest.raises(FilterValidationError):
                    resolve_configuration(kind, section, operator)


class TestVlan:
    @pytest.mark.parametrize("value", ["0", "1", "4095"])
    def test_accepts_valid_ids(self, value):
        assert compile_input(AttributeKind.VLAN, value, section=S) == f"ether[14:2]=={int(value)}"

    def test_double_tagged_offset(self):
        assert compile_input(AttributeKind.VLAN, "7", section=D) == "ether[18:2]==7"

    @pytest.mark.parametrize("value", ["4096", "-1", "abc", "1.5"])
    def test_rejects_invalid_ids(self, value):
        with pytest.raises(InputFormatError) as exc_info:
            compile_input(AttributeKind.VLAN, value, section=S)
        assert exc_info.value.token == value
        assert exc_info.value.kind is AttributeKind.VLAN


class TestEtherType:
    @pytest.mark.parametrize(
        "value, expected",
        [("ipv4", "ip"), ("IPv6", "ip6"), ("arp", "arp"), ("0x0800", "ether proto 0x0800"), ("88F7", "ether proto 0x88f7")],
    )
    def test_accepted(self, value, expected):
        assert compile_input(AttributeKind.ETHERTYPE, value) == expected

    @pytest.mark.parametrize("value", ["8100", "0x88a8", "0x8100"])
    def test_tagging_ethertypes_rejected(self, value):
        with pytest.raises(InputFormatError) as exc_info:
            compile_input(AttributeKind.ETHERTYPE, value)
        assert "tagging sections" in exc_info.value.reason

    @pytest.mark.parametrize("value", ["800", "0x08000", "ipx"])
    def test_malformed_rejected(self, value):
        with pytest.raises(InputFormatError):
            compile_input(AttributeKind.ETHERTYPE, value)


class TestProtocol:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("tcp", "tcp"),
            ("ICMP6", "icmp6"),
            ("ipsec", "(proto esp or udp port 4500)"),
            ("carp", "proto 112"),
            ("17", "proto 17"),
            ("255", "proto 255"),
        ],
    )
    def test_accepted(self, value, expected):
        assert compile_input(AttributeKind.PROTOCOL, value) == expected

    @pytest.mark.parametrize("value", ["256", "sctp", "-6"])
    def test_rejected(self, value):
        with pytest.raises(InputFormatError):
            compile_input(AttributeKind.PROTOCOL, value)


class TestIpAddress:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("192.168.1.10", "host 192.168.1.10"),
            ("2001:db8::1", "host 2001:db8::1"),
            ("10.1.2.3/8", "net 10.0.0.0/8"),
            ("fe80::/64", "net fe80::/64"),
            ("0.0.0.0/0", "net 0.0.0.0/0"),
        ],
    )
    def test_accepted(self, value, expected):
        assert compile_input(AttributeKind.IP_ADDRESS, value) == expected

    @pytest.mark.parametrize("value", ["300.1.1.1", "10.0.0.0/33", "2001:db8::/129", "10.0.0.0/", "host"])
    def test_rejected(self, value):
        with pytest.raises(InputFormatError):
            compile_input(AttributeKind.IP_ADDRESS, value)


class TestMacAddress:
    def test_full_address(self):
        assert compile_input(AttributeKind.MAC_ADDRESS, "0:11:22:aa:BB:c") == "ether host 00:11:22:aa:bb:0c"

    def test_two_groups(self):
        fragment = compile_input(AttributeKind.MAC_ADDRESS, "0:1b")
        assert fragment == "(ether[0:2]==0x001b or ether[6:2]==0x001b)"

    @pytest.mark.parametrize("value, width", [("a", 1), ("de:ad:be:ef", 4)])
    def test_partial_widths(self, value, width):
        assert f"ether[6:{width}]==" in compile_input(AttributeKind.MAC_ADDRESS, value)

    @pytest.mark.parametrize("value", ["a:b:c", "00:11:22:33:44:55:66", "0g", "001:2"])
    def test_rejected(self, value):
        with pytest.raises(InputFormatError):
            compile_input(AttributeKind.MAC_ADDRESS, value)


class TestPort:
    def test_ports_joined_with_or(self):
        assert compile_input(AttributeKind.PORT, "80 443") == "port 80 or port 443"

    @pytest.mark.parametrize("value", ["1000-2000", "1000:2000"])
    def test_range(self, value):
        assert compile_input(AttributeKind.PORT, value) == "portrange 1000-2000"

    @pytest.mark.parametrize("value", ["0", "65536", "2000-1000", "http"])
    def test_rejected(self, value):
        with pytest.raises(InputFormatError):
            compile_input(AttributeKind.PORT, value)


class TestSetInput:
    def test_excluded_terms_are_negated(self):
        fragment = compile_input(AttributeKind.PORT, "80 443", operator=MatchOperator.ATTRIBUTE_EXCLUDE_EACH)
        assert fragment == "not port 80 and not port 443"

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_input_contributes_nothing(self, text):
        attribute = FilterAttribute(U, MatchOperator.OPTIONAL_ANY, AttributeKind.PORT)
        assert attribute.set_input(text) == ""
        assert attribute.compiled

    def test_invalid_token_keeps_no_fragment(self):
        attribute = FilterAttribute(U, MatchOperator.OPTIONAL_ANY, AttributeKind.PORT)
        with pytest.raises(InputFormatError) as exc_info:
            attribute.set_input("80 nope 443")
        assert exc_info.value.token == "nope"
        assert exc_info.value.to_dict()["section"] == "UNTAGGED"
        assert not attribute.compiled
        assert attribute.fragment == ""

    def test_input_is_set_once(self):
        attribute = FilterAttribute(U, MatchOperator.OPTIONAL_ANY, AttributeKind.PORT)
        attribute.set_input("80")
        with pytest.raises(RuntimeError):
            attribute.set_input("443")
        assert attribute.fragment == "port 80"

    def test_custom_validators_are_used(self):
        class EverythingIsLocalhost:
            def parse_ip_address(self, value):
                return "127.0.0.1"

            def parse_subnet(self, value):
                return None

            def parse_mac_groups(self, value):
                return None

        attribute = FilterAttribute(
            U, MatchOperator.OPTIONAL_ANY, AttributeKind.IP_ADDRESS, address_validator=EverythingIsLocalhost()
        )
        assert attribute.set_input("gateway") == "host 127.0.0.1"
