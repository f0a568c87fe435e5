import dataclasses
import http

import pytest
from pydantic import BaseModel, Field, ValidationError

from problem_details import (DecodeError, InvalidStatus, InvalidUri,
                             ProblemDetails, ProblemDetailsException,
                             ProblemType)


class Extensions(BaseModel):
    foo: str
    bar: int


class AliasedExtensions(BaseModel):
    error_code: str = Field(alias='error-code')


@dataclasses.dataclass
class DataExtensions:
    foo: str
    bar: int


def filled():
    return (
        ProblemDetails.new()
        .with_type('test:type')
        .with_status(500)
        .with_title('Test Title')
        .with_detail('Test Detail')
        .with_instance('test:instance')
        .with_extensions(Extensions(foo='Foo', bar=42))
    )


class TestConstruction:

    def test_new(self):
        problem = ProblemDetails.new()

        assert problem.type is None
        assert problem.status is None
        assert problem.title is None
        assert problem.detail is None
        assert problem.instance is None
        assert problem.extensions == {}
        assert problem == ProblemDetails()

    def test_from_status_code(self):
        problem = ProblemDetails.from_status_code(404)

        assert problem.type is None
        assert problem.type_or_default == ProblemType('about:blank')
        assert problem.status == 404
        assert problem.title == 'Not Found'
        assert problem.detail is None
        assert problem.instance is None
        assert problem.extensions == {}

    def test_from_http_status(self):
        problem = ProblemDetails.from_status_code(http.HTTPStatus.IM_A_TEAPOT)

        assert problem.status == 418
        assert problem.title == "I'm a Teapot"

    def test_from_status_code_without_reason(self):
        problem = ProblemDetails.from_status_code(599)

        assert problem.status == 599
        assert problem.title is None

    def test_from_status_code_invalid(self):
        with pytest.raises(InvalidStatus):
            ProblemDetails.from_status_code(700)

    def test_new_on_parameterized_class(self):
        problem = ProblemDetails[Extensions].new()

        assert problem.__pydantic_generic_metadata__['args'] == ()
        assert problem.extensions == {}
        assert problem.to_dict() == {}

    def test_from_status_code_on_parameterized_class(self):
        problem = ProblemDetails[Extensions].from_status_code(404)

        assert problem.__pydantic_generic_metadata__['args'] == ()
        assert problem.to_dict() == {'status': 404, 'title': 'Not Found'}

    def test_fully_configured(self):
        problem = filled()

        assert problem.type == ProblemType('test:type')
        assert problem.status == 500
        assert problem.title == 'Test Title'
        assert problem.detail == 'Test Detail'
        assert problem.instance == 'test:instance'
        assert problem.extensions == Extensions(foo='Foo', bar=42)


class TestBuilders:

    def test_builders_do_not_mutate(self):
        problem = ProblemDetails.new()

        problem.with_type('test:type')
        problem.with_status(404)
        problem.with_title('Test Title')
        problem.with_detail('Test Detail')
        problem.with_instance('test:instance')
        problem.with_extensions({'foo': 'Foo'})

        assert problem == ProblemDetails.new()

    def test_builders_replace_one_field(self):
        problem = ProblemDetails.from_status_code(404).with_detail('Test Detail')
        updated = problem.with_title('Other Title')

        assert updated.title == 'Other Title'
        assert updated.status == problem.status
        assert updated.detail == problem.detail
        assert updated.type == problem.type
        assert updated.instance == problem.instance

    def test_with_type_accepts_problem_type(self):
        problem = ProblemDetails.new().with_type(ProblemType('test:type'))

        assert problem.type == ProblemType('test:type')

    def test_with_type_invalid(self):
        with pytest.raises(InvalidUri) as err:
            ProblemDetails.new().with_type('not a uri\u0000')

        assert err.value.field == 'type'

    def test_with_status_invalid(self):
        with pytest.raises(InvalidStatus) as err:
            ProblemDetails.new().with_status(700)

        assert err.value.value == 700

    def test_with_instance_invalid(self):
        with pytest.raises(InvalidUri) as err:
            ProblemDetails.new().with_instance('not a uri\u0000')

        assert err.value.field == 'instance'

    def test_with_extensions_changes_type(self):
        problem = ProblemDetails.from_status_code(404).with_extensions(Extensions(foo='Foo', bar=42))

        assert isinstance(problem, ProblemDetails)
        assert problem.__pydantic_generic_metadata__['args'] == (Extensions,)
        assert problem.status == 404
        assert problem.title == 'Not Found'
        assert problem.extensions == Extensions(foo='Foo', bar=42)

    def test_with_extensions_twice(self):
        problem = filled().with_extensions({'baz': True})

        assert problem.__pydantic_generic_metadata__['args'] == (dict,)
        assert problem.extensions == {'baz': True}
        assert problem.title == 'Test Title'

    def test_frozen(self):
        problem = ProblemDetails.new()

        with pytest.raises(ValidationError):
            problem.title = 'Test Title'


class TestStatusCode:

    def test_default(self):
        assert ProblemDetails.new().status_code == 500

    def test_set(self):
        assert ProblemDetails.from_status_code(404).status_code == 404


def test_to_string():
    empty = ProblemDetails.new()

    type_only = ProblemDetails.new().with_type('test:type')
    status_only = ProblemDetails.new().with_status(404)
    title_only = ProblemDetails.new().with_title('Test Title')
    detail_only = ProblemDetails.new().with_detail('Test Detail')

    type_status = ProblemDetails.new().with_type('test:type').with_status(404)
    type_title = ProblemDetails.new().with_type('test:type').with_title('Test Title')
    type_detail = ProblemDetails.new().with_type('test:type').with_detail('Test Detail')
    status_title = ProblemDetails.new().with_status(404).with_title('Test Title')
    status_detail = ProblemDetails.new().with_status(404).with_detail('Test Detail')
    title_detail = ProblemDetails.new().with_title('Test Title').with_detail('Test Detail')

    type_status_title = (
        ProblemDetails.new().with_type('test:type').with_status(404).with_title('Test Title')
    )
    type_status_detail = (
        ProblemDetails.new().with_type('test:type').with_status(404).with_detail('Test Detail')
    )
    type_title_detail = (
        ProblemDetails.new().with_type('test:type').with_title('Test Title').with_detail('Test Detail')
    )
    status_title_detail = (
        ProblemDetails.new().with_status(404).with_title('Test Title').with_detail('Test Detail')
    )

    full = (
        ProblemDetails.new()
        .with_type('test:type')
        .with_status(404)
        .with_title('Test Title')
        .with_detail('Test Detail')
    )

    assert str(empty) == '[about:blank]'

    assert str(type_only) == '[test:type]'
    assert str(status_only) == '[about:blank 404] Not Found'
    assert str(title_only) == '[about:blank] Test Title'
    assert str(detail_only) == '[about:blank] Test Detail'

    assert str(type_status) == '[test:type 404] Not Found'
    assert str(type_title) == '[test:type] Test Title'
    assert str(type_detail) == '[test:type] Test Detail'
    assert str(status_title) == '[about:blank 404] Test Title'
    assert str(status_detail) == '[about:blank 404] Not Found: Test Detail'
    assert str(title_detail) == '[about:blank] Test Title: Test Detail'

    assert str(type_status_title) == '[test:type 404] Test Title'
    assert str(type_status_detail) == '[test:type 404] Not Found: Test Detail'
    assert str(type_title_detail) == '[test:type] Test Title: Test Detail'
    assert str(status_title_detail) == '[about:blank 404] Test Title: Test Detail'

    assert str(full) == '[test:type 404] Test Title: Test Detail'


def test_to_string_status_without_reason():
    problem = ProblemDetails.new().with_status(599).with_detail('Test Detail')

    assert str(problem) == '[about:blank 599] Test Detail'


def test_to_string_ignores_extensions():
    assert str(filled()) == '[test:type 500] Test Title: Test Detail'


class TestToDict:

    def test_empty(self):
        assert ProblemDetails.new().to_dict() == {}

    def test_filled(self):
        assert filled().to_dict() == {
            'type': 'test:type',
            'status': 500,
            'title': 'Test Title',
            'detail': 'Test Detail',
            'instance': 'test:instance',
            'foo': 'Foo',
            'bar': 42,
        }

    def test_reserved_fields_first(self):
        assert list(filled().to_dict()) == ['type', 'status', 'title', 'detail', 'instance', 'foo', 'bar']

    def test_dataclass_extensions(self):
        problem = ProblemDetails.new().with_title('Test Title').with_extensions(DataExtensions('Foo', 42))

        assert problem.to_dict() == {'title': 'Test Title', 'foo': 'Foo', 'bar': 42}


class TestFromDict:

    def test_empty(self):
        assert ProblemDetails.from_dict({}) == ProblemDetails.new()

    def test_filled(self):
        problem = ProblemDetails[Extensions].from_dict({
            'type': 'test:type',
            'status': 500,
            'title': 'Test Title',
            'detail': 'Test Detail',
            'instance': 'test:instance',
            'foo': 'Foo',
            'bar': 42,
        })

        assert problem == filled()
        assert problem.extensions == Extensions(foo='Foo', bar=42)

    def test_untyped_extensions_collect_remaining_keys(self):
        problem = ProblemDetails.from_dict({
            'status': 404,
            'foo': 'Foo',
            'nested': {'bar': [1, 2]},
        })

        assert problem.status == 404
        assert problem.title is None
        assert problem.extensions == {'foo': 'Foo', 'nested': {'bar': [1, 2]}}

    def test_unclaimed_keys_are_ignored(self):
        problem = ProblemDetails[Extensions].from_dict({'foo': 'Foo', 'bar': 42, 'unknown': 'value'})

        assert problem.extensions == Extensions(foo='Foo', bar=42)

    def test_null_is_absent(self):
        problem = ProblemDetails.from_dict({
            'type': None,
            'status': None,
            'title': None,
            'detail': None,
            'instance': None,
        })

        assert problem == ProblemDetails.new()

    @pytest.mark.parametrize('status', [700, 99, '500', 500.5, True])
    def test_invalid_status(self, status):
        with pytest.raises(InvalidStatus) as err:
            ProblemDetails.from_dict({'status': status})

        assert err.value.field == 'status'
        assert err.value.value == status

    @pytest.mark.parametrize('field', ['type', 'instance'])
    def test_invalid_uri(self, field):
        with pytest.raises(InvalidUri) as err:
            ProblemDetails.from_dict({field: 'not a uri\u0000'})

        assert err.value.field == field
        assert err.value.value == 'not a uri\u0000'

    def test_invalid_title(self):
        with pytest.raises(DecodeError) as err:
            ProblemDetails.from_dict({'title': 5})

        assert type(err.value) is DecodeError
        assert err.value.field == 'title'
        assert err.value.value == 5

    def test_invalid_extension_field(self):
        with pytest.raises(DecodeError) as err:
            ProblemDetails[Extensions].from_dict({'foo': 'Foo', 'bar': 'not a number'})

        assert err.value.field == 'bar'
        assert err.value.value == 'not a number'

    def test_not_a_mapping(self):
        with pytest.raises(DecodeError):
            ProblemDetails.from_dict(['status', 404])


class TestFromJson:

    def test_round_trip(self):
        problem = filled()

        assert ProblemDetails[Extensions].from_json(problem.to_json()) == problem

    def test_round_trip_untyped(self):
        problem = ProblemDetails.from_status_code(403).with_extensions({'balance': 30, 'accounts': ['/a', '/b']})

        assert ProblemDetails[dict].from_json(problem.to_json()) == problem

    def test_malformed(self):
        with pytest.raises(DecodeError) as err:
            ProblemDetails.from_json('{"status": ')

        assert 'malformed JSON' in err.value.reason

    def test_not_an_object(self):
        with pytest.raises(DecodeError):
            ProblemDetails.from_json('[1, 2, 3]')

    def test_invalid_status(self):
        with pytest.raises(InvalidStatus) as err:
            ProblemDetails.from_json('{"status": 700}')

        assert str(err.value) == "invalid 'status': status code must be between 100 and 599 (got 700)"


class TestProblemDetailsException:

    def test_str(self):
        exc = ProblemDetailsException(ProblemDetails.from_status_code(404).with_detail('no such widget'))

        assert str(exc) == '[about:blank 404] Not Found: no such widget'

    def test_headers(self):
        exc = ProblemDetailsException(ProblemDetails.new(), headers={'Retry-After': '30'})

        assert exc.headers == {'Retry-After': '30'}
        assert ProblemDetailsException(ProblemDetails.new()).headers == {}


class TestAliasedExtensions:

    def test_to_dict_uses_alias(self):
        problem = ProblemDetails.from_status_code(400).with_extensions(AliasedExtensions(**{'error-code': 'E1'}))

        assert problem.to_dict() == {'status': 400, 'title': 'Bad Request', 'error-code': 'E1'}

    def test_round_trip(self):
        problem = ProblemDetails.from_status_code(400).with_extensions(AliasedExtensions(**{'error-code': 'E1'}))
        body = problem.to_json()

        assert body == '{"status":400,"title":"Bad Request","error-code":"E1"}'
        assert ProblemDetails[AliasedExtensions].from_json(body) == problem


class Envelope(BaseModel):
    request_id: str
    problem: ProblemDetails


class TestPydanticSerialization:

    def test_model_dump_is_flat(self):
        problem = ProblemDetails.from_status_code(404).with_extensions({'foo': 'Foo'})

        assert problem.model_dump() == {'status': 404, 'title': 'Not Found', 'foo': 'Foo'}

    def test_model_dump_json_is_flat(self):
        problem = ProblemDetails.from_status_code(404).with_extensions(Extensions(foo='Foo', bar=42))

        assert problem.model_dump_json() == '{"status":404,"title":"Not Found","foo":"Foo","bar":42}'

    def test_model_validate_flat(self):
        problem = ProblemDetails[Extensions].model_validate({'status': 500, 'foo': 'Foo', 'bar': 42})

        assert problem.status == 500
        assert problem.extensions == Extensions(foo='Foo', bar=42)

    def test_model_validate_json_flat(self):
        problem = ProblemDetails.model_validate_json('{"title": "Test Title", "foo": "Foo"}')

        assert problem.title == 'Test Title'
        assert problem.extensions == {'foo': 'Foo'}

    def test_constructor_keeps_structured_extensions(self):
        problem = ProblemDetails[Extensions](status=404, extensions=Extensions(foo='Foo', bar=42))

        assert problem.extensions == Extensions(foo='Foo', bar=42)

    def test_nested_validate(self):
        envelope = Envelope.model_validate({
            'request_id': 'abc',
            'problem': {'status': 404, 'foo': 'x'},
        })

        assert envelope.problem.status == 404
        assert envelope.problem.extensions == {'foo': 'x'}

    def test_nested_dump(self):
        envelope = Envelope(
            request_id='abc',
            problem=ProblemDetails.from_status_code(404).with_extensions({'foo': 'x'}),
        )

        assert envelope.model_dump(mode='json') == {
            'request_id': 'abc',
            'problem': {'status': 404, 'title': 'Not Found', 'foo': 'x'},
        }

    def test_lone_extensions_key_from_wire(self):
        problem = ProblemDetails.from_dict({'status': 404, 'extensions': [1, 2]})

        assert problem.extensions == {'extensions': [1, 2]}
        assert problem.to_dict() == {'status': 404, 'extensions': [1, 2]}
