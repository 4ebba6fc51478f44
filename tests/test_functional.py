"""
Functional Tests - Reader, writer, store, translators and mapper working together.
"""

import fractions
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pytest

from dotprops import binary
from dotprops.coercion import Kind
from dotprops.errors import (
    DecodeError,
    MalformedKeyError,
    PropertiesIOError,
    SerializationError,
    UnconstructibleTypeError,
    UnsupportedTypeError,
)
from dotprops.mapper import ObjectMapper, member, storable_members
from dotprops.reader import PropertiesReader
from dotprops.store import DotProperties, LookupStatus
from dotprops.translators import (
    Endpoint,
    FunctionTranslator,
    TranslatorRegistry,
    UUIDTranslator,
)
from dotprops.writer import PropertiesWriter


@dataclass
class Player:
    name: str = ""
    level: int = member(Kind.INT, default=0)
    grade: str = member(Kind.CHAR, default="A")
    score: float = 0.0
    active: bool = False
    nickname: Optional[str] = None
    tags: list = field(default_factory=list)


@dataclass
class Account:
    owner: uuid.UUID = None
    home: Endpoint = None
    balance: int = 0


@dataclass
class Required:
    ident: str
    note: str = ""


@dataclass
class Base:
    value: int = 0


@dataclass
class Derived(Base):
    pass


class Plain:
    pass


@pytest.fixture
def props(tmp_path):
    return DotProperties(tmp_path / "test.properties")


# =============================================================================
# Reader
# =============================================================================

class TestReader:

    def test_group_and_entry(self):
        result = PropertiesReader.parse('test.message\n    third = "3"\n')
        assert result == {"test.message.third": "3"}

    def test_comments_skipped(self):
        text = '# header comment\ntest.message\n# inside\n    third = "3"\n'
        assert PropertiesReader.parse(text) == {"test.message.third": "3"}

    def test_blank_lines_skipped(self):
        text = '\n\ntest.message\n\n   \n    third = "3"\n\n'
        assert PropertiesReader.parse(text) == {"test.message.third": "3"}

    def test_entry_before_group_dropped(self):
        text = 'orphan = "x"\ntest.message\n    third = "3"\n'
        assert PropertiesReader.parse(text) == {"test.message.third": "3"}

    def test_new_header_replaces_group(self):
        text = 'a.b\n    c = "1"\nx.y\n    c = "2"\n'
        assert PropertiesReader.parse(text) == {"a.b.c": "1", "x.y.c": "2"}

    def test_split_on_first_assign(self):
        result = PropertiesReader.parse('a.b\n    c = "dGVzdA=="\n')
        assert result["a.b.c"] == "dGVzdA=="

    def test_quotes_stripped_everywhere(self):
        result = PropertiesReader.parse('a.b\n    c = "say "hi""\n')
        assert result["a.b.c"] == "say hi"

    def test_unquoted_values(self):
        assert PropertiesReader.parse("a.b\n c=  plain \n") == {"a.b.c": "plain"}

    def test_last_duplicate_wins(self):
        text = 'a.b\n    c = "1"\n    c = "2"\n'
        assert PropertiesReader.parse(text) == {"a.b.c": "2"}

    def test_crlf(self):
        text = 'a.b\r\n    c = "1"\r\n'
        assert PropertiesReader.parse(text) == {"a.b.c": "1"}

    def test_file_order_preserved(self):
        text = 'z.z\n    a = "1"\na.a\n    z = "2"\n'
        assert list(PropertiesReader.parse(text)) == ["z.z.a", "a.a.z"]

    def test_read_size_limit(self, tmp_path):
        path = tmp_path / "big.properties"
        path.write_text('a.b\n    c = "' + "x" * 100 + '"\n', encoding="utf-8")
        with pytest.raises(ValueError):
            PropertiesReader.read(path, max_size=10)


# =============================================================================
# Writer
# =============================================================================

class TestWriter:

    def test_serialize_layout(self):
        text = PropertiesWriter.serialize({
            "test.message.third": "3",
            "test.object.name": "test",
            "test.object.age": "1",
        })
        assert text == (
            "test.message\n"
            '    third = "3"\n'
            "\n"
            "test.object\n"
            '    name = "test"\n'
            '    age = "1"\n'
            "\n"
        )

    def test_groups_in_first_seen_order(self):
        text = PropertiesWriter.serialize({"b.b.x": "1", "a.a.x": "2", "b.b.y": "3"})
        assert text.index("b.b") < text.index("a.a")
        assert text.count("b.b\n") == 1

    def test_empty(self):
        assert PropertiesWriter.serialize({}) == ""

    def test_two_segment_key_rejected(self):
        with pytest.raises(MalformedKeyError):
            PropertiesWriter.serialize({"test.message": "x"})

    def test_deep_key_keeps_remainder(self):
        text = PropertiesWriter.serialize({"a.b.c.d": "v"})
        assert '    c.d = "v"' in text

    def test_write_returns_size(self, tmp_path):
        path = tmp_path / "out.properties"
        nbytes = PropertiesWriter.write({"a.b.c": "1"}, path)
        assert nbytes == path.stat().st_size

    def test_write_truncates(self, tmp_path):
        path = tmp_path / "out.properties"
        PropertiesWriter.write({"a.b.c": "long value " * 20}, path)
        PropertiesWriter.write({"a.b.c": "1"}, path)
        assert path.read_text(encoding="utf-8") == 'a.b\n    c = "1"\n\n'

    def test_malformed_key_keeps_old_file(self, tmp_path):
        path = tmp_path / "out.properties"
        PropertiesWriter.write({"a.b.c": "1"}, path)
        with pytest.raises(MalformedKeyError):
            PropertiesWriter.write({"a.b": "1"}, path)
        assert path.read_text(encoding="utf-8") == 'a.b\n    c = "1"\n\n'

    def test_no_temp_files_left(self, tmp_path):
        PropertiesWriter.write({"a.b.c": "1"}, tmp_path / "out.properties")
        assert [p.name for p in tmp_path.iterdir()] == ["out.properties"]

    def test_write_then_read(self, tmp_path):
        store = {"test.message.first": "1", "test.message.second": "2", "owo.message.first": "test"}
        path = tmp_path / "rt.properties"
        PropertiesWriter.write(store, path)
        assert PropertiesReader.read(path) == store


# =============================================================================
# Store
# =============================================================================

class TestStoreScalars:

    def test_missing_file_is_empty(self, props):
        assert not props.exists()
        assert len(props) == 0
        assert props.get_string("a.b.c") is None

    def test_append_creates_file(self, props):
        props.append_string("test.message.first", "1")
        assert props.exists()
        assert 'first = "1"' in props.path.read_text(encoding="utf-8")

    def test_first_write_wins(self, props):
        props.append_string("test.message.first", "a")
        props.append_string("test.message.first", "b")
        assert props.get_string("test.message.first") == "a"
        assert DotProperties(props.path).get_string("test.message.first") == "a"

    def test_typed_appends(self, props):
        props.append_int("test.values.int", 7)
        props.append_long("test.values.long", 2 ** 40)
        props.append_double("test.values.double", 12.12)
        props.append_boolean("test.values.bool", True)
        props.append_char("test.values.char", "c")

        reloaded = DotProperties(props.path)
        assert reloaded.get_int("test.values.int") == 7
        assert reloaded.get_long("test.values.long") == 2 ** 40
        assert reloaded.get_double("test.values.double") == 12.12
        assert reloaded.get_boolean("test.values.bool") is True
        assert reloaded.get_char("test.values.char") == "c"

    def test_canonical_forms(self, props):
        props.append_boolean("test.values.bool", False)
        props.append_double("test.values.double", 2)
        assert props.get_string("test.values.bool") == "false"
        assert props.get_string("test.values.double") == "2.0"

    def test_parse_degradation(self, props):
        props.append_string("test.values.n", "not-a-number")
        assert props.get_int("test.values.n") is None
        assert props.get_long("test.values.n") is None
        assert props.get_double("test.values.n") is None
        assert props.get_boolean("test.values.n") is None
        assert props.get_char("test.values.n") is None

    def test_int_overflow_degrades(self, props):
        props.append_long("test.values.big", 2 ** 40)
        assert props.get_int("test.values.big") is None
        assert props.get_long("test.values.big") == 2 ** 40

    def test_append_int_out_of_range(self, props):
        with pytest.raises(ValueError):
            props.append_int("test.values.big", 2 ** 40)
        assert "test.values.big" not in props

    def test_append_string_type_checked(self, props):
        with pytest.raises(TypeError):
            props.append_string("test.values.x", 5)

    def test_append_two_segment_key(self, props):
        with pytest.raises(MalformedKeyError):
            props.append_string("test.message", "x")
        assert len(props) == 0
        assert not props.exists()

    def test_deep_keys_round_trip(self, props):
        props.append_string("a.b.c.d.e", "deep")
        props.append_string("a.b.c", "shallow")
        reloaded = DotProperties(props.path)
        assert reloaded.as_dict() == {"a.b.c.d.e": "deep", "a.b.c": "shallow"}


class TestGetOrCreate:

    def test_creates_once(self, props, monkeypatch):
        saves = []
        original = props.save_properties

        def counting_save():
            saves.append(1)
            original()

        monkeypatch.setattr(props, "save_properties", counting_save)

        assert props.get_or_create("test.message.third", "3") == "3"
        assert props.get_or_create("test.message.third", "3") == "3"
        assert len(saves) == 1

    def test_existing_value_returned(self, props):
        props.append_string("test.message.third", "original")
        assert props.get_or_create("test.message.third", "other") == "original"

    def test_persisted(self, props):
        props.get_or_create("test.message.third", "3")
        assert DotProperties(props.path).get_string("test.message.third") == "3"


class TestStorePersistence:

    def test_load_replaces_entries(self, props):
        props.append_string("a.b.c", "1")
        props.path.write_text('x.y\n    z = "2"\n', encoding="utf-8")
        props.load_properties()
        assert props.as_dict() == {"x.y.z": "2"}

    def test_load_missing_file(self, props):
        with pytest.raises(PropertiesIOError):
            props.load_properties()

    def test_load_directory(self, tmp_path):
        with pytest.raises(PropertiesIOError):
            DotProperties(tmp_path)

    def test_load_invalid_utf8(self, tmp_path):
        path = tmp_path / "bad.properties"
        path.write_bytes(b"a.b\n    c = \"\xff\xfe\"\n")
        with pytest.raises(PropertiesIOError):
            DotProperties(path)

    def test_save_failure_rolls_back(self, tmp_path):
        props = DotProperties(tmp_path / "missing" / "x.properties")
        with pytest.raises(PropertiesIOError) as info:
            props.append_string("a.b.c", "1")
        assert "a.b.c" not in props
        assert isinstance(info.value.__cause__, OSError)

    def test_load_over_size_limit(self, tmp_path):
        path = tmp_path / "big.properties"
        path.write_text('a.b\n    c = "' + "x" * 100 + '"\n', encoding="utf-8")
        with pytest.raises(PropertiesIOError) as info:
            DotProperties(path, max_size=10)
        assert isinstance(info.value.__cause__, ValueError)

    def test_loaded_short_key_fails_on_save(self, tmp_path):
        path = tmp_path / "short.properties"
        path.write_text('server\n    port = "1"\n', encoding="utf-8")
        props = DotProperties(path)
        assert props.get_string("server.port") == "1"
        with pytest.raises(MalformedKeyError):
            props.save_properties()

    def test_introspection(self, props):
        props.append_string("a.b.c", "1")
        props.append_string("a.b.d", "2")
        assert props.keys() == ["a.b.c", "a.b.d"]
        assert list(props) == ["a.b.c", "a.b.d"]
        assert "a.b.c" in props
        assert props.has_entries("a.b")
        assert not props.has_entries("a.bc")
        assert "entries=2" in repr(props)


# =============================================================================
# Translators
# =============================================================================

class TestRegistry:

    def test_defaults(self):
        registry = TranslatorRegistry()
        assert uuid.UUID in registry
        assert Endpoint in registry
        assert len(registry) == 2

    def test_empty(self):
        assert len(TranslatorRegistry(defaults=False)) == 0

    def test_last_registration_wins(self):
        registry = TranslatorRegistry()
        replacement = UUIDTranslator()
        registry.register(uuid.UUID, replacement)
        assert registry.lookup(uuid.UUID) is replacement

    def test_exact_match_only(self):
        registry = TranslatorRegistry(defaults=False)
        registry.register(Base, UUIDTranslator())
        assert registry.lookup(Base) is not None
        assert registry.lookup(Derived) is None

    def test_register_requires_type(self):
        with pytest.raises(TypeError):
            TranslatorRegistry().register("uuid", UUIDTranslator())


class TestUUIDTranslator:

    def test_round_trip(self, props):
        value = uuid.uuid4()
        props.append("test.uuid.id", value)
        assert DotProperties(props.path).get("test.uuid.id", uuid.UUID) == value

    def test_sub_fields_signed(self, props):
        value = uuid.UUID("ffffffff-ffff-ffff-0000-000000000001")
        props.append("test.uuid.id", value)
        assert props.get_long("test.uuid.id.most") == -1
        assert props.get_long("test.uuid.id.least") == 1

    def test_missing_half(self, props):
        props.append_long("test.uuid.id.most", 1)
        result = props.lookup("test.uuid.id", uuid.UUID)
        assert result.status is LookupStatus.ERROR
        assert isinstance(result.error, DecodeError)

    def test_unparsable_half(self, props):
        props.append_long("test.uuid.id.most", 1)
        props.append_string("test.uuid.id.least", "zz")
        assert props.get("test.uuid.id", uuid.UUID) is None


class TestEndpointTranslator:

    def test_round_trip(self, props):
        props.append("test.net.address", Endpoint("localhost", 12312))
        loaded = DotProperties(props.path).get("test.net.address", Endpoint)
        assert loaded.port == 12312
        assert loaded.host == props.get_string("test.net.address.host")

    def test_no_host(self, props):
        props.append("test.net.address", Endpoint(None, 80))
        assert props.get_string("test.net.address.host") is None
        assert props.get("test.net.address", Endpoint) == Endpoint(None, 80)

    def test_bad_port(self, props):
        props.append_string("test.net.address.host", "example.org")
        props.append_string("test.net.address.port", "http")
        result = props.lookup("test.net.address", Endpoint)
        assert result.status is LookupStatus.ERROR

    def test_port_out_of_range(self, props):
        props.append_string("test.net.address.port", "70000")
        assert props.get("test.net.address", Endpoint) is None

    def test_endpoint_validates(self):
        with pytest.raises(ValueError):
            Endpoint("h", -1)

    def test_str(self):
        assert str(Endpoint("h", 1)) == "h:1"
        assert str(Endpoint(None, 1)) == "*:1"


class TestCustomTranslator:

    def _fraction_translator(self):
        def serialize(key, store, value):
            store.append_long(key + ".num", value.numerator)
            store.append_long(key + ".den", value.denominator)

        def deserialize(key, store):
            return fractions.Fraction(store.get_long(key + ".num"), store.get_long(key + ".den"))

        return FunctionTranslator(serialize, deserialize)

    def test_register_on_store(self, props):
        props.register(fractions.Fraction, self._fraction_translator())
        props.append("test.math.ratio", fractions.Fraction(3, 4))
        assert props.get_long("test.math.ratio.num") == 3
        assert props.get("test.math.ratio", fractions.Fraction) == fractions.Fraction(3, 4)

    def test_shared_registry(self, tmp_path):
        registry = TranslatorRegistry()
        registry.register(fractions.Fraction, self._fraction_translator())
        first = DotProperties(tmp_path / "a.properties", registry=registry)
        first.append("test.math.ratio", fractions.Fraction(1, 3))
        second = DotProperties(tmp_path / "a.properties", registry=registry)
        assert second.get("test.math.ratio", fractions.Fraction) == fractions.Fraction(1, 3)
        assert second.registry is registry


# =============================================================================
# Object mapper
# =============================================================================

class TestStorableMembers:

    def test_kinds(self):
        kinds = {m.name: m.kind for m in storable_members(Player)}
        assert kinds == {
            "name": Kind.STRING,
            "level": Kind.INT,
            "grade": Kind.CHAR,
            "score": Kind.DOUBLE,
            "active": Kind.BOOLEAN,
            "nickname": Kind.STRING,
            "tags": None,
        }

    def test_not_a_dataclass(self):
        with pytest.raises(UnconstructibleTypeError):
            storable_members(Plain)


class TestMapperSerialize:

    def test_members_stored(self, props):
        props.append("game.player.one", Player("ann", 3, "B", 1.5, True, tags=["x"]))
        assert props.get_string("game.player.one.name") == "ann"
        assert props.get_string("game.player.one.level") == "3"
        assert props.get_string("game.player.one.grade") == "B"
        assert props.get_string("game.player.one.score") == "1.5"
        assert props.get_string("game.player.one.active") == "true"
        assert binary.decode(props.get_string("game.player.one.tags")) == ["x"]

    def test_none_members_skipped(self, props):
        props.append("game.player.one", Player("ann"))
        assert "game.player.one.nickname" not in props

    def test_non_scalar_members_use_binary(self, props):
        owner = uuid.uuid4()
        props.append("bank.account.main", Account(owner, Endpoint("bank.local", 443), 10))
        assert props.keys() == [
            "bank.account.main.owner",
            "bank.account.main.home",
            "bank.account.main.balance",
        ]
        assert binary.decode(props.get_string("bank.account.main.owner")) == owner
        assert binary.decode(props.get_string("bank.account.main.home")) == Endpoint("bank.local", 443)

        loaded = DotProperties(props.path).get("bank.account.main", Account)
        assert loaded == Account(owner, Endpoint("bank.local", 443), 10)

    def test_existing_members_kept(self, props):
        props.append("game.player.one", Player("ann", 1))
        props.append("game.player.one", Player("bob", 2))
        assert props.get("game.player.one", Player).name == "ann"

    def test_out_of_range_member_wrapped(self, props):
        with pytest.raises(SerializationError):
            props.append("game.player.one", Player("ann", 2 ** 40))

    def test_unsupported_member(self, props):
        @dataclass
        class Holder:
            thing: object = None

        with pytest.raises(UnsupportedTypeError):
            props.append("test.holder.one", Holder(Plain()))

    def test_scalar_top_level(self, props):
        props.append("test.values.n", 5)
        props.append("test.values.flag", True)
        assert props.get("test.values.n", int) == 5
        assert props.get("test.values.flag", bool) is True

    def test_collection_top_level(self, props):
        props.append("test.values.list", [1, "two"])
        assert props.get("test.values.list", list) == [1, "two"]
        assert props.get("test.values.list", dict) is None

    def test_saves_once_more_after_members(self, props, monkeypatch):
        saves = []
        original = props.save_properties

        def counting_save():
            saves.append(1)
            original()

        monkeypatch.setattr(props, "save_properties", counting_save)
        props.append("game.player.one", Player("ann"))
        # one per new member, plus the final full save
        new_members = len(props.keys())
        assert len(saves) == new_members + 1


class TestMapperDeserialize:

    def test_missing_members_keep_defaults(self, props):
        props.append_string("game.player.one.name", "ann")
        loaded = props.get("game.player.one", Player)
        assert loaded == Player(name="ann")

    def test_malformed_member(self, props):
        props.append_string("game.player.one.level", "high")
        result = props.lookup("game.player.one", Player)
        assert result.status is LookupStatus.ERROR
        assert isinstance(result.error, DecodeError)

    def test_corrupt_binary_member(self, props):
        props.append_string("game.player.one.tags", "not-base64!")
        assert props.get("game.player.one", Player) is None

    def test_required_member_missing(self, props):
        props.append_string("test.req.one.note", "hi")
        result = props.lookup("test.req.one", Required)
        assert result.status is LookupStatus.ERROR
        assert isinstance(result.error, UnconstructibleTypeError)

    def test_required_member_present(self, props):
        props.append("test.req.one", Required("id-1"))
        assert props.get("test.req.one", Required) == Required("id-1", "")

    def test_plain_class(self, props):
        props.append_string("test.plain.one", "x")
        result = props.lookup("test.plain.one", Plain)
        assert isinstance(result.error, UnconstructibleTypeError)

    def test_absent(self, props):
        result = props.lookup("game.player.none", Player)
        assert result.status is LookupStatus.ABSENT
        assert not result.found
        assert props.get("game.player.none", Player) is None

    def test_found(self, props):
        props.append("game.player.one", Player("ann"))
        result = props.lookup("game.player.one", Player)
        assert result.found
        assert result.value == Player("ann")

    def test_mapper_direct(self, props):
        mapper = ObjectMapper()
        mapper.serialize(props, "game.player.two", Player("cy", 9))
        assert mapper.deserialize(props, "game.player.two", Player) == Player("cy", 9)

    def test_exact_type_dispatch(self, props):
        props.register(Base, FunctionTranslator(
            lambda key, store, value: store.append_string(key + ".custom", "yes"),
            lambda key, store: Base(-1),
        ))
        props.append("test.base.one", Base(1))
        props.append("test.derived.one", Derived(2))
        assert props.get_string("test.base.one.custom") == "yes"
        assert props.get_string("test.derived.one.value") == "2"
        assert props.get("test.derived.one", Derived) == Derived(2)

    def test_binary_types_allowlist(self, tmp_path):
        path = tmp_path / "allow.properties"
        account = Account(uuid.UUID(int=1), Endpoint("bank.local", 443), 5)
        DotProperties(path).append("bank.account.main", account)

        allowed = DotProperties(path, binary_types=[Endpoint])
        assert allowed.get("bank.account.main", Account) == account

        strict = DotProperties(path, binary_types=[])
        result = strict.lookup("bank.account.main", Account)
        assert result.status is LookupStatus.ERROR
        assert isinstance(result.error, DecodeError)
