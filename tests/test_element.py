# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from atomdata.model.element import Element, GenericElement
from atomdata.model.datamodel import Char
from atomdata.model.exceptions import ElementLockedError, MetadataError, ParseError, ValidationError
from atomdata.model.fields import AttributeField, ChildField, ChildListField, ChildSetField, ChildValueField, TextField
from atomdata.model.keys import AttributeKey, ElementKey, QName
from atomdata.model.metadata import AttributeMetadata, Cardinality, ChildMetadata, MetadataRegistry
from atomdata.model.narrowing import narrow
from atomdata.model.validation import validate

NS = 'urn:test'

LABEL = AttributeKey.of('label')
COUNT = AttributeKey.of('count', int)
FLAG = AttributeKey.of('flag', bool)
SPECIES = AttributeKey.of('species')


class Item(Element):
    label = AttributeField(LABEL)
    text = TextField()


ITEM = ElementKey.of(QName(NS, 'item'), str, Item)
NOTE = ElementKey.of(QName(NS, 'note'))
TAG = ElementKey.of(QName(NS, 'tag'))
SIZE = ElementKey.of(QName(NS, 'size'), int)
LID = ElementKey.of(QName(NS, 'lid'))
EXTRA = ElementKey.of(QName(NS, 'extra'))


class Box(Element):
    label = AttributeField(LABEL)
    count = AttributeField(COUNT)
    flag = AttributeField(FLAG)
    note = ChildField[Element](NOTE)
    size = ChildValueField(SIZE)
    items = ChildListField[Item](ITEM)
    tags = ChildSetField[Element](TAG)


class SpecialBox(Box):
    pass


Box.KEY = ElementKey.of(QName(NS, 'box'), None, Box)
SPECIAL_BOX = ElementKey.of(QName(NS, 'box'), None, SpecialBox)


class Pet(Element):
    pass


class Dog(Pet):
    pass


class Cat(Pet):
    pass


PET = ElementKey.of(QName(NS, 'pet'), str, Pet)
DOG = ElementKey.of(QName(NS, 'pet'), str, Dog)
CAT = ElementKey.of(QName(NS, 'pet'), str, Cat)


def make_registry() -> MetadataRegistry:
    registry = MetadataRegistry()
    registry.register(ITEM, [AttributeMetadata(LABEL, required=True)], cardinality=Cardinality.LIST)
    registry.register(TAG, cardinality=Cardinality.SET)
    attributes = [AttributeMetadata(LABEL, required=True), COUNT, FLAG]
    children = [NOTE, SIZE, ITEM, TAG, ChildMetadata(LID, required=True)]
    registry.register(Box.KEY, attributes, children)
    registry.register(PET, [SPECIES], [NOTE], discriminator=lambda element: element.get_attribute(SPECIES))
    registry.register(DOG, [SPECIES], [NOTE])
    registry.register(CAT, [SPECIES], [NOTE])
    registry.adapt(PET, 'dog', DOG)
    registry.adapt(PET, 'cat', CAT)
    return registry


def make_element(key: ElementKey, text: object = None, registry: MetadataRegistry | None = None) -> Element:
    element = key.element_type(key, registry=registry)
    if text is not None:
        element.text_value = text
    return element


def make_box(registry: MetadataRegistry) -> Box:
    box = Box(registry=registry)
    box.label = 'box'
    box.set_element(LID, make_element(LID, 'lid', registry))
    return box


class TestElement:

    def test_keys(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        assert box.key == Box.KEY
        assert box.qname == QName(NS, 'box')
        assert box.registry is registry
        assert Element(QName(NS, 'note')).key == NOTE
        assert Element('{urn:test}note').key == NOTE
        assert Element(NOTE).registry is MetadataRegistry.default

        with pytest.raises(TypeError, match='does not define a default key'):
            Element()
        with pytest.raises(TypeError, match='cannot hold data'):
            Element(ITEM)

    def test_attributes(self) -> None:
        box = Box(registry=make_registry())
        box.label = 'first'
        box.count = 3
        assert box.get_attribute(LABEL) == 'first'
        assert box.count == 3
        assert box.has_attribute(COUNT)
        assert box.attribute_count == 2
        assert dict(box.attributes()) == {LABEL: 'first', COUNT: 3}

        box.count = None
        assert not box.has_attribute(COUNT)
        del box.label
        assert box.label is None
        assert box.attribute_count == 0

        with pytest.raises(TypeError, match='must be of type int'):
            box.count = '3'
        # booleans are only accepted where a boolean is expected
        with pytest.raises(TypeError, match='must be of type int'):
            box.count = True
        box.flag = True
        assert box.flag is True

    def test_character_attributes(self) -> None:
        initial = AttributeKey.of('initial', Char)
        box = Box(registry=make_registry())
        box.set_attribute(initial, Char('a'))
        assert box.get_attribute(initial) == 'a'
        with pytest.raises(TypeError, match='must be of type Char'):
            box.set_attribute(initial, 'ab')
        assert box.get_attribute(initial) == 'a'

    def test_text_value(self) -> None:
        size = make_element(SIZE, 5)
        assert size.text_value == 5
        assert size.has_text_value
        with pytest.raises(TypeError, match='must be of type int'):
            size.text_value = '5'
        del size.text_value
        assert not size.has_text_value

        with pytest.raises(TypeError, match='does not take a value'):
            Box().text_value = 'text'

    def test_single_cardinality(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        first = make_element(NOTE, 'first', registry)
        second = make_element(NOTE, 'second', registry)
        box.add_element(NOTE, first)
        box.add_element(NOTE, second)
        assert box.get_element(NOTE) is second
        assert box.get_elements(NOTE) == [second]
        assert box.get_element_value(NOTE) == 'second'
        assert box.element_count == 1

    def test_list_cardinality(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        first = make_element(ITEM, 'same', registry)
        second = make_element(ITEM, 'same', registry)
        box.add_element(ITEM, first)
        box.add_element(ITEM, second)
        items = box.get_elements(ITEM)
        assert len(items) == 2
        assert items[0] is first
        assert items[1] is second
        assert box.get_element(ITEM) is first

    def test_set_cardinality(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        box.add_element(TAG, make_element(TAG, 'red', registry))
        box.add_element(TAG, make_element(TAG, 'red', registry))
        box.add_element(TAG, make_element(TAG, 'blue', registry))
        assert box.element_count == 2
        assert {tag.text_value for tag in box.get_element_set(TAG)} == {'red', 'blue'}

    def test_explicit_cardinality(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        box.add_element(TAG, make_element(TAG, 'red', registry), cardinality=Cardinality.SET)
        with pytest.raises(MetadataError, match='registered with SET cardinality'):
            box.add_element(TAG, make_element(TAG, 'blue', registry), cardinality=Cardinality.LIST)
        with pytest.raises(MetadataError, match='registered with SET cardinality'):
            Box(registry=registry).add_element(TAG, make_element(TAG, 'blue', registry), cardinality=Cardinality.LIST)
        assert [tag.text_value for tag in box.get_elements(TAG)] == ['red']

        # undeclared keys keep the cardinality they were first stored with
        box.add_element(EXTRA, make_element(EXTRA, 'one'), cardinality=Cardinality.SET)
        with pytest.raises(MetadataError, match='stored with SET cardinality'):
            box.add_element(EXTRA, make_element(EXTRA, 'two'), cardinality=Cardinality.LIST)
        with pytest.raises(MetadataError, match='stored with SET cardinality'):
            box.add_element(EXTRA, make_element(EXTRA, 'two'), cardinality=Cardinality.SINGLE)
        box.add_element(EXTRA, make_element(EXTRA, 'two'))
        assert {element.text_value for element in box.get_elements(EXTRA)} == {'one', 'two'}

    def test_edited_set_members(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        red = make_element(TAG, 'red', registry)
        blue = make_element(TAG, 'blue', registry)
        box.tags = {red, blue}
        red.text_value = 'green'

        assert box.remove_element(TAG, red)
        assert box.get_elements(TAG) == [blue]

        # members are found by equality when they are not the same object
        blue.text_value = 'yellow'
        assert box.replace_element(TAG, make_element(TAG, 'yellow', registry), red)
        assert box.get_elements(TAG) == [red]

        # an edited member that became equal to a new one is not added twice
        box.add_element(TAG, make_element(TAG, 'green', registry))
        assert box.element_count == 1

        # equality uses the current content of the members
        first = make_box(registry)
        tag = make_element(TAG, 'red', registry)
        first.add_element(TAG, tag)
        tag.text_value = 'blue'
        second = make_box(registry)
        second.add_element(TAG, make_element(TAG, 'blue', registry))
        assert first == second
        assert second == first

    def test_undeclared_children_are_lists(self) -> None:
        box = Box(registry=make_registry())
        box.add_element(EXTRA, make_element(EXTRA, 'one'))
        box.add_element(EXTRA, make_element(EXTRA, 'two'))
        assert [element.text_value for element in box.get_elements(EXTRA)] == ['one', 'two']
        assert box.cardinality_of(EXTRA) is Cardinality.SINGLE
        assert box.cardinality_of(EXTRA, default=Cardinality.LIST) is Cardinality.LIST
        assert box.cardinality_of(NOTE, default=Cardinality.LIST) is Cardinality.SINGLE

    def test_children_order(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        note = make_element(NOTE, 'note', registry)
        item = make_element(ITEM, 'item', registry)
        box.add_element(ITEM, item)
        box.add_element(NOTE, note)
        assert list(box.children()) == [(ITEM, item), (NOTE, note)]
        assert box.child_keys == [ITEM, NOTE]

    def test_set_and_remove(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        items = [make_element(ITEM, str(number), registry) for number in range(3)]
        box.add_elements(ITEM, items)

        # removal is by identity, not by equality
        assert not box.remove_element(ITEM, make_element(ITEM, '1', registry))
        assert box.remove_element(ITEM, items[1])
        assert box.get_elements(ITEM) == [items[0], items[2]]

        replacement = make_element(ITEM, 'new', registry)
        assert box.replace_element(ITEM, items[0], replacement)
        assert box.get_elements(ITEM) == [replacement, items[2]]
        assert not box.replace_element(ITEM, items[0], replacement)

        box.set_element(ITEM, items[1])
        assert box.get_elements(ITEM) == [items[1]]
        box.set_element(ITEM, None)
        assert not box.has_element(ITEM)
        assert not box.remove_element(ITEM)

        note = make_element(NOTE, 'note', registry)
        box.set_element(NOTE, note)
        assert box.remove_element(NOTE)
        assert box.element_count == 0

    def test_type_checks(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        with pytest.raises(TypeError, match='must be of type Item'):
            box.add_element(ITEM, make_element(NOTE, 'note'))
        with pytest.raises(ValueError, match='cannot contain itself'):
            box.add_element(Box.KEY, box)
        with pytest.raises(ValueError, match='cannot contain itself'):
            box.add_extension(box)

        box.add_element(NOTE, make_element(NOTE, 'note'))
        assert box.get_element(NOTE, type=Element) is not None
        with pytest.raises(TypeError, match='not a Item'):
            box.get_element(NOTE, type=Item)

    def test_extensions(self) -> None:
        box = Box(registry=make_registry())
        first = GenericElement(QName('urn:other', 'a'))
        second = GenericElement(QName('urn:other', 'b'))
        box.add_extension(first).add_extension(second)
        assert box.extensions == [first, second]
        assert box.get_extensions(QName('urn:other', 'b')) == [second]
        assert box.remove_extension(first)
        assert not box.remove_extension(first)
        assert box.extensions == [second]

    def test_lock(self) -> None:
        registry = make_registry()
        box = make_box(registry)
        item = make_element(ITEM, 'item', registry)
        nested = make_element(NOTE, 'nested', registry)
        item.add_element(NOTE, nested)
        box.add_element(ITEM, item)
        extension = GenericElement(QName('urn:other', 'a'))
        box.add_extension(extension)

        assert box.lock() is box
        assert box.is_locked
        assert item.is_locked
        assert nested.is_locked
        assert extension.is_locked

        with pytest.raises(ElementLockedError):
            box.label = 'other'
        with pytest.raises(ElementLockedError):
            box.add_element(NOTE, make_element(NOTE, 'note'))
        with pytest.raises(ElementLockedError):
            nested.text_value = 'changed'
        with pytest.raises(ElementLockedError):
            extension.set_extra('@a', 'b')
        with pytest.raises(ElementLockedError):
            box.clear()
        assert box.label == 'box'

    def test_equality(self) -> None:
        registry = make_registry()
        first = make_box(registry)
        second = make_box(registry)
        assert first == second
        assert hash(first) == hash(second)

        first.add_element(NOTE, make_element(NOTE, 'note', registry))
        assert first != second
        second.add_element(NOTE, make_element(NOTE, 'note', registry))
        assert first == second

        second.count = 1
        assert first != second
        assert first != 'box'

    def test_adapted_from(self) -> None:
        registry = make_registry()
        box = make_box(registry)
        item = make_element(ITEM, 'item', registry)
        box.add_element(ITEM, item)

        special = SpecialBox.adapted_from(box, SPECIAL_BOX)
        assert isinstance(special, SpecialBox)
        assert special.key == SPECIAL_BOX
        assert special.registry is registry
        assert special.label == 'box'
        assert special.get_element(ITEM) is item

        # the copy is shallow, but the containers are not shared
        special.add_element(ITEM, make_element(ITEM, 'other', registry))
        special.label = 'special'
        assert box.get_elements(ITEM) == [item]
        assert box.label == 'box'


class TestFields:

    def test_child_value_field(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        assert box.size is None
        box.size = 4
        assert box.size == 4
        size = box.get_element(SIZE)
        assert size is not None
        assert size.registry is registry
        box.size = 5
        assert box.get_element(SIZE) is size
        assert size.text_value == 5
        box.size = None
        assert not box.has_element(SIZE)

    def test_collection_fields(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        items = [make_element(ITEM, 'one', registry), make_element(ITEM, 'two', registry)]
        box.items = items
        assert box.items == items
        box.items = items[1:]
        assert box.items == items[1:]

        red = make_element(TAG, 'red', registry)
        box.tags = {red}
        assert box.tags == frozenset({red})
        box.tags = set()
        assert box.tags == frozenset()

        note = make_element(NOTE, 'note', registry)
        box.note = note
        assert box.note is note
        del box.note
        assert box.note is None

    def test_text_field(self) -> None:
        item = make_element(ITEM, registry=make_registry())
        assert isinstance(item, Item)
        item.text = 'text'
        assert item.text_value == 'text'
        del item.text
        assert item.text is None

    def test_descriptors(self) -> None:
        assert isinstance(Box.label, AttributeField)
        assert Box.label.name == 'label'
        assert Box.items.key == ITEM

        with pytest.raises(TypeError, match='construct'):
            ChildField(ElementKey(None, None, Box))
        with pytest.raises(TypeError, match='does not carry a text value'):
            ChildValueField(Box.KEY)

        field = AttributeField(LABEL)
        with pytest.raises(TypeError, match='two different names'):
            type('Broken', (Element,), {'first': field, 'second': field})
        with pytest.raises(TypeError, match='on Element objects'):
            type('NotAnElement', (), {'label': AttributeField(LABEL)})


class TestGenericElement:

    def test_extras(self) -> None:
        element = GenericElement(QName('urn:other', 'blob'))
        assert element.key.datatype is None
        assert element.key.element_type is GenericElement
        assert element.text is None

        element.set_extra('@a', '1').set_extra(GenericElement.TEXT, 'text')
        assert element.get_extra('@a') == '1'
        assert element.text == 'text'
        assert element.extras == {'@a': '1', 'text()': 'text'}
        element.set_extra('@a', None)
        assert element.get_extra('@a') is None

        with pytest.raises(TypeError, match='must be of type str'):
            element.set_extra('@b', 1)  # type: ignore[arg-type]

    def test_equality(self) -> None:
        first = GenericElement('{urn:other}blob').set_extra('@a', '1')
        second = GenericElement('{urn:other}blob').set_extra('@a', '1')
        assert first == second
        assert hash(first) == hash(second)
        second.set_extra('@a', '2')
        assert first != second

    def test_adapted_from(self) -> None:
        element = GenericElement('{urn:other}blob').set_extra('@a', '1')
        copy = GenericElement.adapted_from(element)
        assert copy == element
        copy.set_extra('@a', '2')
        assert element.get_extra('@a') == '1'


class TestValidation:

    def test_missing_attribute(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        box.set_element(LID, make_element(LID, 'lid', registry))
        with pytest.raises(ValidationError, match="missing the required 'label' attribute") as exc_info:
            validate(box)
        assert exc_info.value.missing == LABEL.id
        assert exc_info.value.element is box
        assert isinstance(exc_info.value, ParseError)

    def test_missing_element(self) -> None:
        registry = make_registry()
        box = Box(registry=registry)
        box.label = 'box'
        with pytest.raises(ValidationError, match='missing the required') as exc_info:
            validate(box)
        assert exc_info.value.missing == QName(NS, 'lid')

    def test_recursive(self) -> None:
        registry = make_registry()
        box = make_box(registry)
        validate(box)

        item = make_element(ITEM, 'item', registry)
        box.add_element(ITEM, item)
        validate(box, recursive=False)
        with pytest.raises(ValidationError) as exc_info:
            validate(box)
        assert exc_info.value.element is item

        item.set_attribute(LABEL, 'item')
        validate(box)

    def test_unregistered_elements(self) -> None:
        validate(make_element(EXTRA, 'anything', MetadataRegistry()))


class TestNarrowing:

    def test_narrow(self) -> None:
        registry = make_registry()
        pet = make_element(PET, 'Rex', registry)
        pet.set_attribute(SPECIES, 'dog')
        note = make_element(NOTE, 'good boy', registry)
        pet.add_element(NOTE, note)

        dog = narrow(pet)
        assert isinstance(dog, Dog)
        assert dog.key == DOG
        assert dog.qname == pet.qname
        assert dog.text_value == 'Rex'
        assert dog.get_attribute(SPECIES) == 'dog'
        assert dog.get_element(NOTE) is note
        assert type(pet) is Pet

    def test_narrowing_is_idempotent(self) -> None:
        registry = make_registry()
        pet = make_element(PET, 'Tom', registry)
        pet.set_attribute(SPECIES, 'cat')
        cat = narrow(pet)
        assert isinstance(cat, Cat)
        assert narrow(cat) is cat

    def test_unknown_kinds(self) -> None:
        registry = make_registry()
        pet = make_element(PET, 'Nemo', registry)
        assert narrow(pet) is pet
        pet.set_attribute(SPECIES, 'fish')
        assert narrow(pet) is pet
        other = make_element(EXTRA, 'other', registry)
        assert narrow(other) is other

    def test_explicit_registry(self) -> None:
        pet = make_element(PET, 'Rex')
        pet.set_attribute(SPECIES, 'dog')
        assert narrow(pet) is pet
        assert isinstance(narrow(pet, make_registry()), Dog)
