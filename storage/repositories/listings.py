"""
Listings Repository.

Responsibilities:
- Existence checks and lookups for listings.
- The visibility flag toggled from the review workflow.

Non-Responsibilities:
- No business logic.
- No entity resolution.
- No scoring.

Invariant:
Repositories must not encode domain decisions.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from artisanmatch.database import Listing


@dataclass(frozen=True)
class ListingText:
    id: int
    title: str
    description: Optional[str]
    item_type: Optional[str]
    is_hidden: bool

    @property
    def text(self) -> str:
        return "\n".join(part for part in (self.title, self.description) if part)


def _to_listing(row: Listing) -> ListingText:
    return ListingText(
        id=row.id,
        title=row.title or "",
        description=row.description,
        item_type=row.item_type,
        is_hidden=bool(row.is_hidden),
    )


class ListingRepository:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, listing_id: int) -> Optional[ListingText]:
        with self.session_factory() as session:
            row = session.get(Listing, listing_id)
            return _to_listing(row) if row is not None else None

    def exists(self, listing_id: int) -> bool:
        return self.get(listing_id) is not None

    def add(
        self,
        listing_id: int,
        title: str,
        description: Optional[str] = None,
        item_type: Optional[str] = None,
    ) -> ListingText:
        with self.session_factory() as session:
            row = Listing(id=listing_id, title=title, description=description, item_type=item_type)
            session.add(row)
            session.commit()
            return _to_listing(row)

    def set_hidden(self, listing_id: int, hidden: bool) -> Optional[ListingText]:
        with self.session_factory() as session:
            row = session.get(Listing, listing_id)
            if row is None:
                return None
            row.is_hidden = hidden
            session.commit()
            return _to_listing(row)

    def iter_listings(self, batch_size: int = 500) -> Iterator[ListingText]:
        """Yield all listings ordered by id, one short session per batch."""
        last_id = None
        while True:
            stmt = select(Listing).order_by(Listing.id).limit(batch_size)
            if last_id is not None:
                stmt = stmt.where(Listing.id > last_id)
            with self.session_factory() as session:
                batch: List[ListingText] = [_to_listing(r) for r in session.scalars(stmt).all()]
            if not batch:
                return
            yield from batch
            last_id = batch[-1].id
