import json
from unittest.mock import Mock

import pytest
from assertive import assert_that, is_exact_type, is_none, is_same_instance_as, raises_exception, was_called

from clean_wire import (
    BuildServiceEvent,
    ConfigError,
    ConfigureServiceEvent,
    Container,
    DeprecationSink,
    InvalidConfigError,
)
from tests.services import Announcer, ArgsTest, Broken, Greeting, Listener, Loud, NamedGreeting, Tally


def test_value_service():
    container = Container(config={"foo": {"value": "Hello, World"}})

    assert_that(container.get("foo")).matches("Hello, World")


def test_value_is_not_resolved():
    container = Container(config={"foo": {"$value": {"$class": Greeting, "nested": [{"$ref": "bar"}]}}})

    assert_that(container.get("foo")).matches({"$class": Greeting, "nested": [{"$ref": "bar"}]})


def test_env_service_reads_the_environment_when_built(monkeypatch):
    container = Container(config={"greeting": {"$env": "GREETING", "$lifecycle": "factory"}})

    monkeypatch.setenv("GREETING", "Hi")
    assert_that(container.get("greeting")).matches("Hi")

    monkeypatch.setenv("GREETING", "Howdy")
    assert_that(container.get("greeting")).matches("Howdy")


def test_env_service_unset(monkeypatch):
    monkeypatch.delenv("GREETING", raising=False)
    container = Container(
        config={
            "greeting": {"$env": "GREETING"},
            "defaulted": {"$env": "GREETING", "$default": "Hello"},
        }
    )

    assert_that(container.get("greeting")).matches(is_none())
    assert_that(container.get("defaulted")).matches("Hello")


def test_config_service_reads_a_file_relative_to_the_container(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps({"hello": "Hi", "who": ["Doug"]}))
    (tmp_path / "services.yml").write_text("settings:\n  $config: settings.json\n")

    container = Container(file=tmp_path / "services.yml")

    assert_that(container.get("settings")).matches({"hello": "Hi", "who": ["Doug"]})


def test_config_service_default_when_missing(tmp_path):
    container = Container(
        dir=tmp_path,
        config={
            "settings": {"$config": "missing.yml", "$default": {"hello": "Hi"}},
            "no_default": {"$config": "missing.yml"},
        },
    )

    assert_that(container.get("settings")).matches({"hello": "Hi"})
    with raises_exception(ConfigError):
        container.get("no_default")


def test_config_service_parse_error(tmp_path):
    (tmp_path / "broken.yml").write_text("hello: [unclosed\n")
    container = Container(dir=tmp_path, config={"settings": {"$config": "broken.yml", "$default": {}}})

    with raises_exception(ConfigError):
        container.get("settings")


def test_class_by_import_path():
    container = Container(config={"greeting": {"$class": "tests.services.Greeting", "hello": "Hi"}})

    greeting = container.get("greeting")

    assert_that(greeting).matches(is_exact_type(Greeting))
    assert_that(greeting.greet()).matches("Hi, World")


def test_argument_shapes():
    container = Container(
        config={
            "positional": {"$class": ArgsTest, "$args": ["a", "b"]},
            "named": {"$class": ArgsTest, "$args": {"a": 1}},
            "scalar": {"$class": ArgsTest, "$args": "only"},
            "wrapped": {"$class": ArgsTest, "$args": [{"a": 1}]},
            "none": {"$class": ArgsTest},
        }
    )

    assert_that(container.get("positional").got_args).matches(["a", "b"])
    assert_that(container.get("named").got_kwargs).matches({"a": 1})
    assert_that(container.get("scalar").got_args).matches(["only"])
    assert_that(container.get("wrapped").got_args).matches([{"a": 1}])
    assert_that(container.get("none").got_args).matches([])


def test_factory_method():
    container = Container(config={"tally": {"$class": Tally, "$method": "starting_at", "$args": [5]}})

    assert_that(container.get("tally").total).matches(5)


def test_method_chain():
    container = Container(
        config={
            "tally": {
                "$class": Tally,
                "$args": ["ignored"],
                "$method": [
                    {"$method": "starting_at", "$args": [1]},
                    {"$method": "add", "$args": [2]},
                    {"$method": "plus", "$args": [10], "$return": "chain"},
                    {"$method": "add", "$args": [100]},
                ],
            }
        }
    )

    assert_that(container.get("tally").total).matches(113)


def test_method_chain_first_step_may_call_the_class():
    container = Container(
        config={
            "tally": {
                "$class": Tally,
                "$method": [{"$args": {"start": 3}}, {"$method": "add", "$args": [4]}],
            }
        }
    )

    assert_that(container.get("tally").total).matches(7)


def test_method_chain_steps_need_a_method():
    container = Container(config={"tally": {"$class": Tally, "$method": [{"$args": [1]}, {"$args": [2]}]}})

    with raises_exception(InvalidConfigError):
        container.get("tally")


def test_method_chain_args_are_resolved():
    container = Container(
        config={
            "amount": {"$value": 40},
            "tally": {
                "$class": Tally,
                "$method": [{"$method": "starting_at", "$args": [2]}, {"$method": "add", "$args": [{"$ref": "amount"}]}],
            },
        }
    )

    assert_that(container.get("tally").total).matches(42)


def test_with_composes_roles():
    container = Container(
        config={
            "greeting": {"$class": Greeting, "$with": [Loud], "hello": "Hi"},
            "by_name": {"$class": Greeting, "$with": "tests.services.Loud", "hello": "Hey"},
        }
    )

    greeting = container.get("greeting")

    assert isinstance(greeting, Loud)
    assert_that(greeting.shout()).matches("HI, WORLD")
    assert_that(container.get("by_name").shout()).matches("HEY, WORLD")


def test_named_service_is_told_its_name():
    container = Container(config={"greeting": {"$class": NamedGreeting, "hello": "Hi"}})

    greeting = container.get("greeting")

    assert_that(greeting.name).matches("greeting")
    assert_that(greeting.container).matches(is_same_instance_as(container))
    assert_that(greeting.greet()).matches("Hi, World")


def test_on_subscribes_listeners():
    container = Container(
        config={
            "listener": {"$class": Listener},
            "announcer": {
                "$class": Announcer,
                "$on": {"greet": {"$ref": "listener", "$sub": "on_greet"}},
            },
        }
    )

    container.get("announcer").greet()
    container.get("announcer").greet()

    assert_that(container.get("listener").events_seen).matches([("greet",), ("greet",)])


def test_on_accepts_lists_and_listener_args():
    container = Container(
        config={
            "listener": {"$class": Listener},
            "announcer": {
                "$class": Announcer,
                "$on": [
                    {"greet": {"$ref": "listener", "$sub": "on_greet"}},
                    {"greet": [{"$ref": "listener", "$sub": "on_greet", "$args": ["extra", {"$ref": "word"}]}]},
                ],
            },
            "word": {"$value": "word"},
        }
    )

    container.get("announcer").greet()

    assert_that(container.get("listener").events_seen).matches([("greet",), ("greet", "extra", "word")])


def test_listener_args_given_by_a_single_reference():
    container = Container(
        config={
            "listener": {"$class": Listener},
            "extras": {"$value": ["first", "second"]},
            "announcer": {
                "$class": Announcer,
                "$on": {"greet": {"$ref": "listener", "$sub": "on_greet", "$args": {"$ref": "extras"}}},
            },
        }
    )

    container.get("announcer").greet()

    assert_that(container.get("listener").events_seen).matches([("greet", "first", "second")])


def test_on_with_legacy_method_key():
    sink = DeprecationSink()
    container = Container(
        deprecations=sink,
        config={
            "listener": {"$class": Listener},
            "announcer": {"$class": Announcer, "$on": {"greet": {"$ref": "listener", "$method": "on_greet"}}},
        },
    )

    with pytest.warns(DeprecationWarning):
        container.get("announcer").greet()

    assert_that(container.get("listener").events_seen).matches([("greet",)])
    assert_that(sink.messages).matches(['warning: (deprecated) "$method" in a listener is now "$sub"'])


def test_on_needs_an_emitter():
    container = Container(
        config={
            "listener": {"$class": Listener},
            "greeting": {"$class": Greeting, "$on": {"greet": {"$ref": "listener", "$sub": "on_greet"}}},
        }
    )

    with raises_exception(InvalidConfigError):
        container.get("greeting")


def test_on_needs_a_sub():
    container = Container(
        config={
            "listener": {"$class": Listener},
            "announcer": {"$class": Announcer, "$on": {"greet": {"$ref": "listener"}}},
        }
    )

    with raises_exception(InvalidConfigError):
        container.get("announcer")


def test_configure_and_build_events():
    configured = Mock()
    built = Mock()
    container = Container(config={"greeting": {"$class": Greeting, "hello": "Hi"}, "name": {"$value": "x"}})
    container.on("configure_service", configured)
    container.on("build_service", built)

    greeting = container.get("greeting")
    container.get("name")

    assert_that(configured).matches(was_called().once)
    assert_that(built).matches(was_called().once)

    configure_event = configured.call_args.args[0]
    build_event = built.call_args.args[0]
    assert_that(configure_event).matches(is_exact_type(ConfigureServiceEvent))
    assert_that(configure_event.service_name).matches("greeting")
    assert_that(configure_event.config).matches({"class": Greeting, "args": {"hello": "Hi"}})
    assert_that(build_event).matches(is_exact_type(BuildServiceEvent))
    assert_that(build_event.service).matches(is_same_instance_as(greeting))
    assert_that(build_event.emitter).matches(is_same_instance_as(container))


def test_constructor_errors_are_not_wrapped():
    container = Container(config={"broken": {"$class": Broken}})

    with pytest.raises(RuntimeError, match="broken on purpose"):
        container.get("broken")

    assert "broken" not in container.services
