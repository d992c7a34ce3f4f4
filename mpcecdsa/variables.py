"""
Named values exchanged by the parties.

Secret: a value known in full by its owner (dealer or a reconstructing
        party) together with the per party fragments.
Share:  one party's fragment of a Secret.
Public: a value everybody may see, broadcast verbatim.

Share and Public values are write-once.
"""

from typing import Dict, Optional

from . import shamir
from .errors import DuplicateShareWrite, ModulusMismatch
from .finite_field import FieldElement, FiniteField, P_FIELD


class Public:
    def __init__(self, name: str, value: Optional[int] = None):
        self.name = name
        self._value = None
        if value is not None:
            self.value = value

    @property
    def value(self) -> Optional[int]:
        return self._value

    @value.setter
    def value(self, v: int):
        if self._value is not None:
            raise DuplicateShareWrite(f"{self!r} is already set")
        self._value = v

    @property
    def known(self) -> bool:
        return self._value is not None

    def __repr__(self):
        v = "?" if self._value is None else f"{self._value:X}"
        return f"{type(self).__name__}({self.name}=[{v}])"


class Share(Public):
    def __init__(self, name: str, idx: int, value: Optional[int] = None,
                 field: FiniteField = P_FIELD):
        self.idx = idx
        self.field = field
        super().__init__(name, None if value is None else field.normalize(value))

    @property
    def element(self) -> FieldElement:
        return self.field.element(self.value)

    def __repr__(self):
        v = "?" if self._value is None else f"{self._value:0>64X}"
        return f"Share({self.name}#{self.idx}=[{v}])"


class Secret:
    def __init__(self, name: str, value: Optional[int] = None,
                 field: FiniteField = P_FIELD):
        self.name = name
        self.field = field
        self.value = None if value is None else field.normalize(value)
        self.shares: Dict[int, Share] = {}

    def set_share(self, share: Share):
        if share.field != self.field:
            raise ModulusMismatch(f"{share!r} belongs to {share.field}, {self.name} to {self.field}")
        if share.name != self.name:
            raise ValueError(f"{share!r} is not a share of {self.name}")
        self.shares[share.idx] = share

    def get_share(self, idx: int) -> Share:
        """The share for party idx, an empty placeholder if not yet known."""
        if idx not in self.shares:
            self.shares[idx] = Share(self.name, idx, field=self.field)
        return self.shares[idx]

    def split(self, n: int, k: int) -> Dict[int, Share]:
        if self.value is None:
            raise ValueError(f"secret {self.name} has no value to split")
        self.shares = {}
        for idx, v in shamir.split(self.value, n, k, self.field):
            self.set_share(Share(self.name, idx, v, self.field))
        return dict(self.shares)

    def reconstruct(self, k: int) -> int:
        points = [(idx, s.value) for idx, s in sorted(self.shares.items()) if s.known]
        self.value = shamir.reconstruct(points, k, self.field)
        return self.value

    def __repr__(self):
        contents = [f"Secret({self.name}) value [{'?' if self.value is None else f'{self.value:0>64X}'}]"]
        for idx, s in sorted(self.shares.items()):
            contents.append(f"  {s!r}")
        return "\n".join(contents)
