"""
End-to-end tests: generated modules are executed and driven through the runtime.
"""

import textwrap
import threading

import pytest

import classforge.runtime as rt
from classforge.enums import MethodsType
from classforge.runtime.inventory import InventoryError


def _bind(make_engine, load_generated, source, name="generated_mod", **settings):
  result = make_engine(**settings).run(textwrap.dedent(source))
  assert result.success, result.errors
  return load_generated(result.code, name)


COUNTER = '''
from typing import Annotated


@pyclass(dict, weakref, freelist = 2, module = "demo")
@text_signature("(start=0)")
class Counter:
    """Counts things."""

    value: Annotated[int, prop(get, set)] = 0
    label: Annotated[str, prop(get)] = "counter"

    def __init__(self, start=0):
        self.value = start

    def incr(self, by=1):
        self.value += by
        return self.value

    @staticmethod
    def zero():
        return 0

    @classmethod
    def kind(cls):
        return cls.__name__

    @property
    def doubled(self):
        return self.value * 2

    def __repr__(self):
        return f"Counter({self.value})"

    def __len__(self):
        return self.value

    def __eq__(self, other):
        return isinstance(other, Counter) and other.value == self.value

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def __call__(self, n):
        return self.value + n


@pymethods(Counter)
class CounterExtra:
    def decr(self, by=1):
        self.value -= by
        return self.value
'''


@pytest.fixture
def counter_mod(make_engine, load_generated):
  return _bind(make_engine, load_generated, COUNTER)


def test_type_object_identity(counter_mod):
  impl = counter_mod.CounterClassImpl
  assert not impl.TYPE_OBJECT.initialized

  tp = impl.type_object()
  assert impl.TYPE_OBJECT.initialized
  assert impl.type_object() is tp
  assert tp.name == "Counter"
  assert tp.qualname == "demo.Counter"
  assert tp.doc == "Counter(start=0)\n--\n\nCounts things."
  assert tp.cls is counter_mod.Counter
  assert tp.base is None
  assert rt.impl_of(counter_mod.Counter) is impl


def test_methods_from_every_site(counter_mod):
  obj = rt.new_object(counter_mod.Counter, 5)

  assert obj.call_method("incr", 2) == 7
  assert obj.call_method("decr") == 6
  assert obj.call_method("zero") == 0
  assert obj.call_method("kind") == "Counter"
  assert obj.call_method("__enter__") is obj.value
  assert obj.call_method("__exit__", None, None, None) is False
  with pytest.raises(AttributeError, match="'Counter' object has no attribute 'missing'"):
    obj.call_method("missing")


def test_properties(counter_mod):
  obj = rt.new_object(counter_mod.Counter, 3)

  assert obj.getattr("value") == 3
  assert obj.getattr("label") == "counter"
  assert obj.getattr("doubled") == 6
  obj.setattr("value", 10)
  assert obj.value.value == 10
  with pytest.raises(AttributeError, match="attribute 'label' of 'Counter' objects is not writable"):
    obj.setattr("label", "other")


def test_dict_slot(counter_mod):
  obj = rt.new_object(counter_mod.Counter)
  obj.setattr("extra", 1)
  assert obj.getattr("extra") == 1
  assert obj.attributes == {"extra": 1}
  with pytest.raises(AttributeError):
    obj.getattr("unknown")


def test_protocol_slots(counter_mod):
  obj = rt.new_object(counter_mod.Counter, 4)
  assert repr(obj) == "Counter(4)"
  assert str(obj) == "Counter(4)"
  assert len(obj) == 4
  assert bool(obj)
  assert obj(1) == 5
  assert obj == rt.new_object(counter_mod.Counter, 4)
  assert obj != rt.new_object(counter_mod.Counter, 5)
  assert not rt.new_object(counter_mod.Counter, 0)


def test_weak_references(counter_mod):
  obj = rt.new_object(counter_mod.Counter)
  ref = obj.downgrade()
  assert ref() is obj


def test_free_list_reuses_released_shells(counter_mod):
  alloc = counter_mod.CounterClassImpl.ALLOC
  first = rt.new_object(counter_mod.Counter, 1)
  first.release()
  assert len(alloc.get_free_list()) == 1

  second = rt.new_object(counter_mod.Counter, 2)
  assert second is first
  assert second.getattr("value") == 2
  assert len(alloc.get_free_list()) == 0


def test_free_list_is_bounded(counter_mod):
  alloc = counter_mod.CounterClassImpl.ALLOC
  objs = [rt.new_object(counter_mod.Counter, i) for i in range(3)]
  for obj in objs:
    obj.release()
  assert len(alloc.get_free_list()) == 2


def test_release_twice_pools_shell_once(counter_mod):
  alloc = counter_mod.CounterClassImpl.ALLOC
  obj = rt.new_object(counter_mod.Counter, 1)
  obj.release()
  obj.release()
  assert len(alloc.get_free_list()) == 1

  second = rt.new_object(counter_mod.Counter, 2)
  third = rt.new_object(counter_mod.Counter, 3)
  assert second is not third
  assert (second.getattr("value"), third.getattr("value")) == (2, 3)


def test_access_after_release_raises(counter_mod):
  obj = rt.new_object(counter_mod.Counter, 1)
  obj.release()
  assert obj.released

  with pytest.raises(RuntimeError, match="'Counter' object has already been released"):
    obj.value
  with pytest.raises(RuntimeError, match="already been released"):
    obj.getattr("value")
  with pytest.raises(RuntimeError, match="already been released"):
    obj.attributes
  with pytest.raises(RuntimeError, match="already been released"):
    obj.downgrade()


def test_weakly_referenced_shell_is_not_reused(counter_mod):
  alloc = counter_mod.CounterClassImpl.ALLOC
  obj = rt.new_object(counter_mod.Counter, 1)
  ref = obj.downgrade()
  obj.release()
  assert len(alloc.get_free_list()) == 0

  other = rt.new_object(counter_mod.Counter, 2)
  assert ref() is obj
  assert ref() is not other
  assert ref().released


def test_into_object(counter_mod):
  obj = rt.into_object(counter_mod.Counter(7))
  assert isinstance(obj, rt.PyObject)
  assert obj.getattr("value") == 7

  with pytest.raises(TypeError, match="'int' is not a bound type"):
    rt.into_object(1)


# --- layouts without optional slots ---

EMPTY = """
@pyclass
class Empty:
    pass
"""


def test_defaults_without_slots(make_engine, load_generated):
  mod = _bind(make_engine, load_generated, EMPTY)
  obj = rt.into_object(mod.Empty())

  assert repr(obj).startswith("<Empty object at 0x")
  with pytest.raises(TypeError, match="No constructor defined for Empty"):
    rt.new_object(mod.Empty)
  with pytest.raises(AttributeError, match="'Empty' object has no attribute 'x'"):
    obj.setattr("x", 1)
  with pytest.raises(AttributeError):
    obj.attributes
  with pytest.raises(TypeError, match="cannot create weak reference to 'Empty' object"):
    obj.downgrade()
  with pytest.raises(TypeError, match="'Empty' object is not callable"):
    obj()
  with pytest.raises(TypeError, match="'Empty' object does not support __len__"):
    len(obj)
  with pytest.raises(TypeError, match="a bytes-like object is required"):
    obj.buffer()


def test_unbound_type():
  class Stranger:
    pass

  with pytest.raises(TypeError, match="'Stranger' is not a bound type"):
    rt.impl_of(Stranger)


# --- constructors ---


def test_constructor_from_block(make_engine, load_generated):
  mod = _bind(
    make_engine,
    load_generated,
    """
    @pyclass
    class Pair:
        pass


    @pymethods(Pair)
    class PairCtor:
        def __init__(self, a, b):
            self.a = a
            self.b = b
    """,
  )
  obj = rt.new_object(mod.Pair, 1, 2)
  assert isinstance(obj.value, mod.Pair)
  assert (obj.value.a, obj.value.b) == (1, 2)


def test_dunder_new_constructor(make_engine, load_generated):
  mod = _bind(
    make_engine,
    load_generated,
    """
    @pyclass
    class Token:
        def __new__(cls, text):
            obj = object.__new__(cls)
            obj.text = text
            return obj
    """,
  )
  assert rt.new_object(mod.Token, "abc").value.text == "abc"


# --- inheritance ---

ANIMALS = """
@pyclass(subclass, unsendable)
class Animal:
    def __init__(self, name):
        self.name = name

    def speak(self):
        return "..."

    def describe(self):
        return f"{self.name} says {self.speak()}"


@pyclass(extends = Animal)
class Dog(Animal):
    def __init__(self, name):
        super().__init__(name)

    def speak(self):
        return "woof"
"""


def test_subclass_resolves_base_methods(make_engine, load_generated):
  mod = _bind(make_engine, load_generated, ANIMALS)
  dog = rt.new_object(mod.Dog, "rex")

  tp = dog.type_object
  assert tp.base is mod.AnimalClassImpl.type_object()
  assert [t.name for t in tp.mro()] == ["Dog", "Animal"]
  assert dog.call_method("describe") == "rex says woof"
  assert mod.DogClassImpl.base_impl() is mod.AnimalClassImpl


def test_subclass_inherits_layout_and_checker(make_engine, load_generated):
  mod = _bind(make_engine, load_generated, ANIMALS)
  assert mod.DogClassImpl.Dict is mod.AnimalClassImpl.Dict
  assert mod.DogClassImpl.WeakRef is mod.AnimalClassImpl.WeakRef
  assert issubclass(mod.DogClassImpl.ThreadChecker, rt.ThreadCheckerInherited)
  assert mod.DogClassImpl.ThreadChecker.BASE is rt.ThreadCheckerImpl

  dog = rt.new_object(mod.Dog, "rex")
  errors = []

  def touch():
    try:
      dog.value
    except RuntimeError as e:
      errors.append(str(e))

  worker = threading.Thread(target=touch)
  worker.start()
  worker.join()
  assert errors == ["Dog is unsendable, but sent to another thread!"]


def test_subclass_values_are_not_converted(make_engine, load_generated):
  mod = _bind(
    make_engine,
    load_generated,
    """
    @pyclass(subclass)
    class Base:
        pass


    @pyclass(unsendable, extends = Base)
    class Sub(Base):
        pass
    """,
  )
  assert isinstance(rt.into_object(mod.Base()), rt.PyObject)
  with pytest.raises(TypeError, match="'Sub' extends 'Base' and cannot be converted to an object"):
    rt.into_object(mod.Sub())


def test_base_must_accept_subclasses(make_engine, load_generated):
  mod = _bind(
    make_engine,
    load_generated,
    """
    @pyclass
    class Plain:
        pass


    @pyclass(extends = Plain)
    class Sub(Plain):
        def __init__(self):
            pass
    """,
  )
  with pytest.raises(TypeError, match="type 'Plain' is not an acceptable base type"):
    rt.new_object(mod.Sub)


# --- thread affinity ---


def test_unsendable_release_on_foreign_thread_leaks(make_engine, load_generated, recorded_console):
  mod = _bind(
    make_engine,
    load_generated,
    """
    @pyclass(unsendable)
    class Local:
        def __init__(self):
            self.x = 1
    """,
  )
  obj = rt.new_object(mod.Local)
  worker = threading.Thread(target=obj.release)
  worker.start()
  worker.join()

  assert obj.value.x == 1
  assert "Local is unsendable, but is being dropped on another thread!" in recorded_console.getvalue()


# --- gc and buffers ---


def test_gc_traversal(make_engine, load_generated):
  mod = _bind(
    make_engine,
    load_generated,
    """
    @pyclass(gc)
    class Node:
        def __init__(self, *children):
            self.children = list(children)

        def __traverse__(self, visit):
            for child in self.children:
                visit(child)

        def __clear__(self):
            self.children.clear()
    """,
  )
  node = rt.new_object(mod.Node, "a", "b")
  assert isinstance(node.value, rt.GCProtocol)

  seen = []
  node.traverse(seen.append)
  assert seen == ["a", "b"]

  node.clear()
  assert node.value.children == []


def test_buffer_protocol(make_engine, load_generated):
  mod = _bind(
    make_engine,
    load_generated,
    """
    @pyclass
    class Blob:
        def __init__(self, data):
            self.data = bytearray(data)
            self.released = 0

        def __buffer__(self, flags):
            return memoryview(self.data)

        def __release_buffer__(self, view):
            self.released += 1
            view.release()
    """,
  )
  blob = rt.new_object(mod.Blob, b"abc")
  view = blob.buffer()
  assert bytes(view) == b"abc"
  blob.release_buffer(view)
  assert blob.value.released == 1


# --- inventory registration ---

SHAPES = """
@pyclass
class Shape:
    def __init__(self, sides):
        self.sides = sides

    def count(self):
        return self.sides


@pymethods(Shape)
class ShapeNames:
    def name(self):
        return {3: "triangle", 4: "square"}.get(self.sides, "polygon")
"""

SHAPE_EXTENSION = """
import shapes_mod


@pymethods(shapes_mod.Shape)
class ShapeGeometry:
    def is_closed(self):
        return self.sides >= 3
"""


def test_inventory_gathers_same_module_sites(make_engine, load_generated):
  mod = _bind(make_engine, load_generated, SHAPES, methods_type=MethodsType.INVENTORY)
  assert rt.inventory.get_inventory().is_collected("PyMethodsInventoryForShape")

  shape = rt.new_object(mod.Shape, 4)
  assert shape.call_method("count") == 4
  assert shape.call_method("name") == "square"


def test_inventory_gathers_other_modules(make_engine, load_generated):
  mod = _bind(make_engine, load_generated, SHAPES, name="shapes_mod", methods_type=MethodsType.INVENTORY)
  _bind(make_engine, load_generated, SHAPE_EXTENSION, name="shapes_ext", methods_type=MethodsType.INVENTORY)

  shape = rt.new_object(mod.Shape, 3)
  assert shape.call_method("name") == "triangle"
  assert shape.call_method("is_closed") is True


def test_inventory_rejects_second_collection_point(make_engine, load_generated):
  code = make_engine(methods_type=MethodsType.INVENTORY).run(textwrap.dedent(SHAPES)).code
  load_generated(code, "shapes_first")
  with pytest.raises(InventoryError, match="already registered by module 'shapes_first'"):
    load_generated(code, "shapes_second")
