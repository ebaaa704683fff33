"""Native implementations of object methods.

METHOD_EVAL maps (type code, method id) to a function
`(ev, env, obj, args) -> payload`. The evaluator tags the returned payload
with the call node's static type. The table is built once at import and
mirrors the descriptors in ergotree.methods.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any, Callable

from ergotree.chain import Header, PreHeader
from ergotree.types import COLLECTION_CODE, OPTION_CODE, SAvlTree, SBox, SContext, SGlobal, SGroupElement, SHeader, SPreHeader
from ergotree.values import AVL_DIGEST_SIZE, AvlTreeData, Value, bytes_to_coll, coll_to_bytes
from interpreter.errors import InvalidArgumentError, UnexpectedValueError
from primitives.group import GroupElement

if TYPE_CHECKING:
    from interpreter.env import Env
    from interpreter.evaluator import Evaluator

NativeMethod = Callable[["Evaluator", "Env", Value, list[Value]], Any]

METHOD_EVAL: dict[tuple[int, int], NativeMethod] = {}


def _register(type_code: int, method_id: int):
    def wrap(fn: NativeMethod) -> NativeMethod:
        METHOD_EVAL[(type_code, method_id)] = fn
        return fn
    return wrap


def _property(type_code: int, method_id: int, getter: Callable[[Any], Any]) -> None:
    METHOD_EVAL[(type_code, method_id)] = lambda ev, env, obj, args: getter(obj.v)


def _signed_byte(b: int) -> int:
    return b - 256 if b > 127 else b


# --- Coll ---

_property(COLLECTION_CODE, 1, len)
_property(COLLECTION_CODE, 14, lambda items: tuple(range(len(items))))


@_register(COLLECTION_CODE, 2)
def _coll_get_or_else(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    index, default = args
    if 0 <= index.v < len(obj.v):
        return obj.v[index.v]
    return default.v


@_register(COLLECTION_CODE, 15)
def _coll_flat_map(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    (f,) = args
    elem = obj.tpe.elem
    out: list[Any] = []
    for item in obj.v:
        ev.charge_items(1)
        out.extend(ev.apply(f, [Value(elem, item)], env).v)
    return tuple(out)


@_register(COLLECTION_CODE, 26)
def _coll_index_of(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    elem, start = args
    for i in range(max(start.v, 0), len(obj.v)):
        ev.charge_items(1)
        if obj.v[i] == elem.v:
            return i
    return -1


@_register(COLLECTION_CODE, 29)
def _coll_zip(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    (other,) = args
    return tuple(zip(obj.v, other.v))


# --- Option ---

@_register(OPTION_CODE, 7)
def _option_map(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    (f,) = args
    if not obj.v:
        return ()
    return (ev.apply(f, [Value(obj.tpe.elem, obj.v[0])], env).v,)


@_register(OPTION_CODE, 8)
def _option_filter(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    (p,) = args
    if not obj.v:
        return ()
    keep = ev.apply(p, [Value(obj.tpe.elem, obj.v[0])], env)
    return obj.v if keep.v else ()


# --- GroupElement ---

_property(SGroupElement.code, 2, lambda ge: bytes_to_coll(ge.to_bytes()))
_property(SGroupElement.code, 5, GroupElement.negate)


@_register(SGroupElement.code, 3)
def _group_exp(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    return obj.v.scalar_mul(args[0].v)


@_register(SGroupElement.code, 4)
def _group_multiply(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    return obj.v.add(args[0].v)


# --- Box ---

def _box_property(method_id: int, getter: Callable[[Any], Any]) -> None:
    METHOD_EVAL[(SBox.code, method_id)] = lambda ev, env, obj, args: getter(ev.ctx.get_box(obj.v))


_box_property(1, lambda b: b.value)
_box_property(2, lambda b: bytes_to_coll(b.ergo_tree.to_bytes()))
_box_property(3, lambda b: bytes_to_coll(b.to_bytes()))
_box_property(4, lambda b: bytes_to_coll(b.bytes_without_ref()))
_box_property(5, lambda b: bytes_to_coll(b.box_id))
_box_property(6, lambda b: b.get_register(3).v)
_box_property(8, lambda b: b.get_register(2).v)


# --- AvlTree ---

_property(SAvlTree.code, 1, lambda t: bytes_to_coll(t.digest))
_property(SAvlTree.code, 2, lambda t: t.enabled_operations)
_property(SAvlTree.code, 3, lambda t: t.key_length)
_property(SAvlTree.code, 4, lambda t: () if t.value_length_opt is None else (t.value_length_opt,))
_property(SAvlTree.code, 5, lambda t: t.insert_allowed)
_property(SAvlTree.code, 6, lambda t: t.update_allowed)
_property(SAvlTree.code, 7, lambda t: t.remove_allowed)


@_register(SAvlTree.code, 8)
def _avl_update_operations(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    return AvlTreeData.with_operations(obj.v, args[0].v & 0xFF)


@_register(SAvlTree.code, 15)
def _avl_update_digest(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    digest = coll_to_bytes(args[0].v)
    if len(digest) != AVL_DIGEST_SIZE:
        raise InvalidArgumentError(f"AvlTree digest must be {AVL_DIGEST_SIZE} bytes, got {len(digest)}")
    return dataclasses.replace(obj.v, digest=digest)


# --- Context ---

_property(SContext.code, 1, lambda ctx: ctx.data_inputs)
_property(SContext.code, 2, lambda ctx: ctx.headers)
_property(SContext.code, 4, lambda ctx: ctx.inputs)
_property(SContext.code, 5, lambda ctx: ctx.outputs)
_property(SContext.code, 6, lambda ctx: ctx.height)
_property(SContext.code, 7, lambda ctx: ctx.self_box)
_property(SContext.code, 8, lambda ctx: ctx.self_index)
_property(SContext.code, 10, lambda ctx: bytes_to_coll(ctx.miner_pubkey))


@_register(SContext.code, 3)
def _context_pre_header(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    if obj.v.pre_header is None:
        raise UnexpectedValueError("Context has no pre-header")
    return obj.v.pre_header


@_register(SContext.code, 9)
def _context_last_block_utxo_root(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    if obj.v.last_block_utxo_root is None:
        raise UnexpectedValueError("Context has no last block UTXO root")
    return obj.v.last_block_utxo_root


# --- Header / PreHeader ---

def _header_properties(type_code: int, cls: type, fields: list[tuple[int, Callable[[Any], Any]]]) -> None:
    def checked(getter: Callable[[Any], Any]) -> Callable[[Any], Any]:
        def get(h: Any) -> Any:
            if not isinstance(h, cls):
                raise UnexpectedValueError(f"Expected {cls.__name__}, got {type(h).__name__}")
            return getter(h)
        return get

    for method_id, getter in fields:
        _property(type_code, method_id, checked(getter))


_header_properties(SHeader.code, Header, [
    (1, lambda h: bytes_to_coll(h.id)),
    (2, lambda h: _signed_byte(h.version)),
    (3, lambda h: bytes_to_coll(h.parent_id)),
    (4, lambda h: bytes_to_coll(h.ad_proofs_root)),
    (5, lambda h: h.state_root),
    (6, lambda h: bytes_to_coll(h.transactions_root)),
    (7, lambda h: h.timestamp),
    (8, lambda h: h.n_bits),
    (9, lambda h: h.height),
    (10, lambda h: bytes_to_coll(h.extension_root)),
    (11, lambda h: h.miner_pk),
    (12, lambda h: h.pow_onetime_pk),
    (13, lambda h: bytes_to_coll(h.pow_nonce)),
    (14, lambda h: h.pow_distance),
    (15, lambda h: bytes_to_coll(h.votes)),
])

_header_properties(SPreHeader.code, PreHeader, [
    (1, lambda h: _signed_byte(h.version)),
    (2, lambda h: bytes_to_coll(h.parent_id)),
    (3, lambda h: h.timestamp),
    (4, lambda h: h.n_bits),
    (5, lambda h: h.height),
    (6, lambda h: h.miner_pk),
    (7, lambda h: bytes_to_coll(h.votes)),
])


# --- Global ---

_property(SGlobal.code, 1, lambda _: GroupElement.generator())


@_register(SGlobal.code, 2)
def _global_xor(ev: Evaluator, env: Env, obj: Value, args: list[Value]) -> Any:
    a, b = args
    return tuple(_signed_byte((x ^ y) & 0xFF) for x, y in zip(a.v, b.v))

