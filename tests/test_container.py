import copy
from typing import List

import pytest

from freedom_api import Container, DeserializationError, Inner, Satellite, Shared
from freedom_api.container import decode_value


def _satellite() -> Satellite:
    return Satellite(name="FooBar 6", norad_cat_id=40710, links={"self": "https://freedom.test/api/satellites/710"})


def test_inner_is_transparent_for_reads():
    sat = _satellite()
    wrapped = Inner(sat)

    assert wrapped.name == "FooBar 6"
    assert wrapped.get_id() == 710
    assert wrapped == sat
    assert wrapped == Inner(_satellite())


def test_inner_into_inner_returns_the_held_object():
    sat = _satellite()
    assert Inner(sat).into_inner() is sat


def test_containers_are_read_only():
    wrapped = Inner(_satellite())
    with pytest.raises(AttributeError):
        wrapped.name = "other"
    with pytest.raises(AttributeError):
        del wrapped.name


def test_container_delegates_len_iteration_and_indexing():
    wrapped = Inner([1, 2, 3])
    assert len(wrapped) == 3
    assert list(wrapped) == [1, 2, 3]
    assert wrapped[1] == 2
    assert 3 in wrapped


def test_shared_clone_does_not_copy():
    first = Shared(_satellite())
    second = first.clone()

    assert second.value is first.value
    assert first.handle_count == 2

    del second
    assert first.handle_count == 1


def test_shared_into_inner_copies_while_other_handles_live():
    sat = _satellite()
    first = Shared(sat)
    second = first.clone()

    owned = first.into_inner()
    assert owned == sat
    assert owned is not sat

    # the remaining handle is now the only holder
    assert second.handle_count == 1
    assert second.into_inner() is sat


def test_shared_copy_protocol():
    first = Shared(_satellite())
    shallow = copy.copy(first)
    deep = copy.deepcopy(first)

    assert shallow.value is first.value
    assert deep.value == first.value
    assert deep.value is not first.value
    assert first.handle_count == 2


def test_decode_value_lists_and_models():
    decoded = decode_value(List[Satellite], [{"name": "A"}, {"name": "B"}])
    assert [s.name for s in decoded] == ["A", "B"]


def test_decode_value_wraps_model_errors():
    with pytest.raises(DeserializationError) as exc_info:
        decode_value(Satellite, {"description": "no name"})
    assert "name" in exc_info.value.reason


def test_decode_value_checks_plain_json_types():
    assert decode_value(dict, {"a": 1}) == {"a": 1}
    with pytest.raises(DeserializationError):
        decode_value(list, {"a": 1})


def test_decode_value_rejects_undecodable_types():
    with pytest.raises(TypeError):
        decode_value(complex, {})


def test_container_is_abstract():
    with pytest.raises(TypeError):
        Container(1)

    class Partial(Container):
        __slots__ = ()

        def into_inner(self):
            return None

    with pytest.raises(TypeError):
        Partial()
