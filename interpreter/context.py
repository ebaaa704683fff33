"""Execution context.

The transaction validator builds a Context for each input being spent. Boxes
are referred to by id everywhere (INPUTS, OUTPUTS, SELF, Box values) and
resolved through a BoxArena when a script reads them.
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ergotree.chain import ContextExtension, ErgoBox, Header, PreHeader
from ergotree.values import AvlTreeData, BoxId
from interpreter.errors import ArenaError
from primitives.group import GROUP_ELEMENT_SIZE


# --- Box Arena ---

class BoxArena(ABC):
    """Resolves box ids to box records."""

    @abstractmethod
    def get(self, box_id: BoxId) -> ErgoBox:
        """Box with the given id.

        Raises:
            ArenaError: If the box is unknown
        """


class InMemoryBoxArena(BoxArena):
    """Dict-backed arena."""

    def __init__(self, boxes: Iterable[ErgoBox] = ()):
        self._boxes: dict[BoxId, ErgoBox] = {}
        for b in boxes:
            self.add(b)

    def add(self, box: ErgoBox) -> BoxId:
        box_id = box.box_id
        self._boxes[box_id] = box
        return box_id

    def get(self, box_id: BoxId) -> ErgoBox:
        try:
            return self._boxes[box_id]
        except KeyError:
            raise ArenaError(f"Box {box_id.hex()} not found") from None

    def __len__(self) -> int:
        return len(self._boxes)


# --- Context ---

@dataclass(frozen=True)
class Context:
    """Everything a script can observe about the spending transaction.

    Attributes:
        height: Height of the block being validated
        self_box: Id of the box being spent
        inputs: Ids of all inputs of the transaction
        outputs: Ids of all outputs
        box_arena: Resolver for all of the above
        data_inputs: Ids of read-only inputs
        pre_header: Header fields of the block being built
        headers: Last block headers, most recent first
        extension: Context variables supplied by the spender
        miner_pubkey: Compressed public key of the miner
        last_block_utxo_root: UTXO set digest after the previous block
    """

    height: int
    self_box: BoxId
    inputs: tuple[BoxId, ...]
    outputs: tuple[BoxId, ...]
    box_arena: BoxArena
    data_inputs: tuple[BoxId, ...] = ()
    pre_header: Optional[PreHeader] = None
    headers: tuple[Header, ...] = ()
    extension: ContextExtension = field(default_factory=ContextExtension)
    miner_pubkey: bytes = bytes(GROUP_ELEMENT_SIZE)
    last_block_utxo_root: Optional[AvlTreeData] = None

    @classmethod
    def from_boxes(
        cls,
        height: int,
        self_box: ErgoBox,
        inputs: Iterable[ErgoBox] = (),
        outputs: Iterable[ErgoBox] = (),
        data_inputs: Iterable[ErgoBox] = (),
        **kwargs,
    ) -> Context:
        """Build a context over an InMemoryBoxArena holding the given boxes.

        self_box is added to inputs if it is not already among them.
        """
        arena = InMemoryBoxArena()
        self_id = arena.add(self_box)
        input_ids = [arena.add(b) for b in inputs]
        if self_id not in input_ids:
            input_ids.insert(0, self_id)
        return cls(
            height=height,
            self_box=self_id,
            inputs=tuple(input_ids),
            outputs=tuple(arena.add(b) for b in outputs),
            box_arena=arena,
            data_inputs=tuple(arena.add(b) for b in data_inputs),
            **kwargs,
        )

    def get_box(self, box_id: BoxId) -> ErgoBox:
        return self.box_arena.get(box_id)

    @property
    def self_index(self) -> int:
        try:
            return self.inputs.index(self.self_box)
        except ValueError:
            return -1

    def with_extension(self, extension: ContextExtension) -> Context:
        return dataclasses.replace(self, extension=extension)
