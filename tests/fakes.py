"""
In-memory stand-ins for the stores and clock the engine depends on.
"""

from decimal import Decimal

from supplynet.models.member import Member
from supplynet.models.offer import Offer, OfferVariant, PurchaseRestriction


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_member(
    member_id: int,
    rank: str = "NORMAL",
    status: str = "ACTIVE",
    referrer_id: int | None = None,
    parent_id: int | None = None,
    path: list[int] | None = None,
) -> Member:
    """Build a transient Member."""
    return Member(
        id=member_id,
        rank=rank,
        status=status,
        referrer_id=referrer_id,
        parent_id=parent_id,
        path=path,
    )


def build_tree(*specs: tuple) -> dict[int, Member]:
    """
    Build members from (id, rank, status, upline_id) tuples.

    Uplines must be listed before their downline. Paths are derived from
    the referrer links.
    """
    members: dict[int, Member] = {}
    for member_id, rank, status, upline_id in specs:
        path = [] if upline_id is None else members[upline_id].path + [upline_id]
        members[member_id] = make_member(
            member_id, rank, status, referrer_id=upline_id, path=path
        )
    return members


class FakeMemberRepository:
    """In-memory member store with call counting."""

    def __init__(self, members: dict[int, Member] | None = None) -> None:
        self.members = members or {}
        self.calls = {"find_by_id": 0, "find_many_by_id": 0}
        self.error: Exception | None = None

    def add(self, member: Member) -> None:
        self.members[member.id] = member

    async def find_by_id(self, member_id: int) -> Member | None:
        self.calls["find_by_id"] += 1
        if self.error is not None:
            raise self.error
        return self.members.get(member_id)

    async def find_many_by_id(self, member_ids) -> list[Member]:
        self.calls["find_many_by_id"] += 1
        if self.error is not None:
            raise self.error
        return [self.members[i] for i in member_ids if i in self.members]

    async def find_children(self, member_id: int) -> list[Member]:
        return [
            m for m in self.members.values()
            if m.referrer_id == member_id or m.parent_id == member_id
        ]

    async def find_subtree(self, member_id: int) -> list[Member]:
        return [
            m for m in self.members.values()
            if m.id != member_id and (
                m.referrer_id == member_id
                or m.parent_id == member_id
                or (m.path is not None and member_id in m.path)
            )
        ]

    async def find_all_ids(self) -> list[int]:
        return sorted(self.members)

    async def update_ancestry(self, member_id, referrer_id, parent_id, path):
        member = self.members[member_id]
        member.referrer_id = referrer_id
        member.parent_id = parent_id
        member.path = path

    async def update_path(self, member_id, path):
        self.members[member_id].path = path


class FakeOfferRepository:
    """In-memory offer store."""

    def __init__(self) -> None:
        self.offers: dict[int, Offer] = {}
        self.restrictions: dict[int, PurchaseRestriction] = {}
        self.error: Exception | None = None

    def add(
        self,
        offer: Offer,
        restriction: PurchaseRestriction | None = None,
    ) -> None:
        self.offers[offer.id] = offer
        if restriction is not None:
            self.restrictions[offer.id] = restriction

    async def find_by_id(self, offer_id: int) -> Offer | None:
        if self.error is not None:
            raise self.error
        return self.offers.get(offer_id)

    async def find_purchase_restriction(
        self, offer_id: int
    ) -> PurchaseRestriction | None:
        return self.restrictions.get(offer_id)


def make_offer(
    offer_id: int = 1,
    status: str = "ACTIVE",
    variants: list[tuple[int, bool]] | None = None,
) -> Offer:
    """Build a transient Offer from (stock, is_active) variant tuples."""
    variants = variants if variants is not None else [(100, True)]
    return Offer(
        id=offer_id,
        name=f"Offer {offer_id}",
        status=status,
        total_stock=sum(stock for stock, _ in variants),
        variants=[
            OfferVariant(
                id=offer_id * 100 + index,
                stock=stock,
                price=Decimal("10.00"),
                is_active=is_active,
            )
            for index, (stock, is_active) in enumerate(variants)
        ],
    )


class _Savepoint:
    """Nested transaction discarding records added inside it on error."""

    def __init__(self, session: "FakeLedgerSession") -> None:
        self.session = session
        self.mark = 0

    async def __aenter__(self) -> "_Savepoint":
        self.mark = len(self.session.pending)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            del self.session.pending[self.mark:]
        return False


class FakeLedgerSession:
    """
    Session stand-in for commission writes.

    pending holds flushed but uncommitted objects; committed holds
    objects that survived a commit.
    """

    def __init__(self, fail_after: int | None = None) -> None:
        self.pending: list = []
        self.committed: list = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_after = fail_after
        self._added = 0
        self._next_id = 1

    def add(self, obj) -> None:
        self._added += 1
        if self.fail_after is not None and self._added > self.fail_after:
            raise RuntimeError("ledger unavailable")
        self.pending.append(obj)

    async def flush(self) -> None:
        for obj in self.pending:
            if obj.id is None:
                obj.id = self._next_id
                self._next_id += 1

    async def refresh(self, obj) -> None:
        return None

    async def commit(self) -> None:
        self.committed.extend(self.pending)
        self.pending = []
        self.commits += 1

    async def rollback(self) -> None:
        self.pending = []
        self.rollbacks += 1

    def begin_nested(self) -> _Savepoint:
        return _Savepoint(self)


