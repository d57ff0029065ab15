"""작품 소유권 이전(구매) 서비스.

두 컬렉션(``Users``, ``ArtPieces``)에 걸친 트랜잭션을 저장소가 제공하지 않으므로
구매는 작품 단위의 단계들을 순서대로 실행하고, 중간에 실패하면 어디까지 반영되었는지를
:class:`~artmarket.core.errors.PartialFailure` 로 보고합니다.

작품 하나의 처리 순서:

1. 판매자 문서 교체 (etag 조건부, 충돌시 다시 읽어서 재적용)
2. 이전 소유자 파티션에서 작품 문서 삭제 (실패하면 1을 되돌림)
3. 새 소유자 파티션에 작품 문서 생성 (재시도, 끝내 실패하면 수동 복구 필요)

다음 작품은 같은 판매자 문서를 다시 사용할 수 있으므로 작품들은 하나씩 순서대로
처리합니다. 구매자 문서는 모든 작품을 처리한 후 한번만 저장합니다.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from artmarket import cache
from artmarket.auth import Identity
from artmarket.core import (
    AbstractRepository,
    AbstractUnitOfWork,
    Conflict,
    Forbidden,
    InconsistentTransfer,
    NotFound,
    PartialFailure,
    RateLimited,
    Timeout,
    Unauthenticated,
    Unavailable,
    ValidationError,
)
from artmarket.domain import ArtPiece, Document, Transfer, User, transfer_ownership
from artmarket.logging import get_logger
from artmarket.utils import Deadline

logger = get_logger("artmarket.services.transfer")

MAX_ATTEMPTS = 3

D = TypeVar("D", bound=Document)


@dataclass
class TransferResult:
    transfers: list[Transfer] = field(default_factory=list)
    success: bool = True

    def to_dict(self):
        return {
            "success": self.success,
            "transfers": [it.to_dict() for it in self.transfers],
        }


def caller_id(identity: Optional[Identity]) -> str:
    if not identity or not identity.user_id:
        raise Unauthenticated("Token missing userId claim")
    return identity.user_id


def check_transfers(
    identity: Identity, art_piece_ids: Sequence[str], art_pieces: dict[str, ArtPiece]
) -> None:
    """쓰기 전에 모든 작품의 구매 가능 여부를 검사합니다.

    같은 id 가 여러번 나오면 두번째부터는 앞에서 이미 구매자 소유가 된 것으로
    간주합니다.

    Raises:
        ValidationError: 소유자가 없는 (손상된) 작품이 있을 때.
        Forbidden: 관리자가 아닌 사용자가 자기 작품을 구매하려 할 때.
    """
    owners: dict[str, str] = {}
    for art_piece_id in art_piece_ids:
        seller_id = owners.get(art_piece_id, art_pieces[art_piece_id].user_id)
        if not seller_id:
            raise ValidationError(f"Art piece {art_piece_id} is missing owner")
        if seller_id == identity.user_id and not identity.is_admin:
            raise Forbidden("Cannot purchase your own art piece")
        owners[art_piece_id] = identity.user_id


def _is_transient(e: BaseException) -> bool:
    return isinstance(e, (Unavailable, RateLimited)) and not isinstance(e, Timeout)


async def replace_reloading(
    repo: AbstractRepository[D],
    item: D,
    reapply: Callable[[D], None],
    deadline: Optional[Deadline] = None,
) -> D:
    """문서를 조건부로 교체합니다.

    다른 요청이 먼저 문서를 바꿔 etag 가 맞지 않으면 문서를 다시 읽고 `reapply`
    로 변경 내용을 다시 적용한 후 재시도합니다. 교체된 최신 문서를 리턴합니다.
    `reapply` 는 여러번 적용해도 결과가 같아야 합니다.
    """
    deadline = deadline or Deadline()
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(MAX_ATTEMPTS),
        retry=retry_if_exception_type(Conflict),
        reraise=True,
    ):
        with attempt:
            if attempt.retry_state.attempt_number > 1:
                name = type(item).__name__
                logger.info("%s %s changed concurrently, reloading", name, item.id)
                fresh = await deadline.run(repo.get(item.id, item.partition_key))
                if fresh is None:
                    raise NotFound(f"{name} {item.id} not found")
                reapply(fresh)
                item = fresh
            await deadline.run(repo.replace(item))
    return item


async def _create_moved(
    art_pieces: AbstractRepository[ArtPiece], art_piece: ArtPiece, deadline: Deadline
) -> None:
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, max=1),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    ):
        with attempt:
            await deadline.run(art_pieces.create(art_piece))


async def _is_removed(
    art_pieces: AbstractRepository[ArtPiece], art_piece_id: str, owner: str, deadline: Deadline
) -> bool:
    """응답을 받지 못한 삭제가 실제로 반영되었는지 확인합니다."""
    try:
        return await deadline.run(art_pieces.get(art_piece_id, owner)) is None
    except Exception:
        logger.warning("could not check art piece %s under %s", art_piece_id, owner)
        return False


async def _restore_seller(
    users: AbstractRepository[User], seller: User, art_piece_id: str, deadline: Deadline
) -> User:
    """작품 삭제에 실패했을 때 판매자의 ``createdPieces`` 를 되돌립니다.

    Raises:
        InconsistentTransfer: 되돌리지 못해 판매자 문서와 작품 문서가 어긋났을 때.
    """
    seller.add_created(art_piece_id)
    try:
        return await replace_reloading(
            users, seller, lambda u: u.add_created(art_piece_id), deadline
        )
    except Exception as e:
        logger.critical(
            "art piece %s is still owned by %s but missing from their createdPieces",
            art_piece_id,
            seller.id,
        )
        raise InconsistentTransfer(
            f"Art piece {art_piece_id} is still owned by {seller.id} but could not be "
            f"restored to their createdPieces; manual reconciliation required",
            failed=art_piece_id,
        ) from e


async def _move(
    uow: AbstractUnitOfWork,
    art_piece: ArtPiece,
    seller: User,
    buyer: User,
    deadline: Deadline,
) -> tuple[Transfer, User]:
    """작품 하나의 소유권을 옮기고 저장합니다. 기록과 최신 판매자 문서를 리턴합니다."""
    users, art_pieces = uow[User], uow[ArtPiece]
    transfer = transfer_ownership(art_piece, seller, buyer)

    if seller is buyer:
        # 관리자가 이미 소유한 작품: 파티션 이동이 필요 없습니다.
        logger.info("art piece %s already owned by %s", art_piece.id, buyer.id)
        return transfer, seller

    seller = await replace_reloading(
        users, seller, lambda u: u.remove_created(art_piece.id), deadline
    )

    try:
        await deadline.run(art_pieces.delete(art_piece.id, transfer.old_owner))
    except Exception as e:
        # 판매자 문서는 이미 바뀌었으므로 이후 단계는 새 시간 예산으로 실행합니다.
        grace = deadline.renew()
        if isinstance(e, Timeout) and await _is_removed(
            art_pieces, art_piece.id, transfer.old_owner, grace
        ):
            logger.warning("delete of art piece %s timed out but was applied", art_piece.id)
        else:
            logger.warning(
                "failed to remove art piece %s from %s, restoring seller",
                art_piece.id,
                transfer.old_owner,
            )
            await _restore_seller(users, seller, art_piece.id, grace)
            raise

    try:
        # 삭제가 반영된 후에는 남은 시간과 상관없이 생성을 시도합니다.
        await _create_moved(art_pieces, art_piece, deadline.renew())
    except Exception as e:
        logger.critical(
            "art piece %s was deleted from %s but could not be created for %s",
            art_piece.id,
            transfer.old_owner,
            transfer.new_owner,
        )
        raise InconsistentTransfer(
            f"Art piece {art_piece.id} was removed from {transfer.old_owner} but "
            f"could not be stored for {transfer.new_owner}; manual reconciliation required",
            failed=art_piece.id,
        ) from e

    return transfer, seller


async def purchase(
    identity: Optional[Identity],
    art_piece_ids: Sequence[str],
    uow: AbstractUnitOfWork,
    timeout: Optional[float] = None,
) -> TransferResult:
    """작품들의 소유권을 현재 소유자들에게서 구매자(호출자)로 옮깁니다.

    검증과 권한 에러는 어떤 쓰기보다도 먼저 발생합니다. 작품들은 요청 순서대로
    처리되며, 일부가 저장된 후 실패하면 저장된 작품 목록과 함께
    :class:`PartialFailure` 가 발생합니다. 이미 저장된 작품은 되돌리지 않습니다.

    Raises:
        Unauthenticated: 호출자 id 가 없을 때.
        ValidationError: id 목록이 비었거나 소유자가 없는 작품이 있을 때.
        NotFound: 작품이나 사용자를 찾을 수 없을 때.
        Forbidden: 관리자가 아닌 사용자가 자기 작품을 구매하려 할 때.
        PartialFailure: 일부 작품만 이전된 후 실패했을 때.
        Timeout: `timeout` 초 안에 끝나지 않았을 때.
    """
    buyer_id = caller_id(identity)
    ids = list(art_piece_ids or [])
    if not ids:
        raise ValidationError("artPieceIds must be a non-empty list")
    if not all(isinstance(it, str) and it for it in ids):
        raise ValidationError("artPieceIds must contain only non-empty ids")

    deadline = Deadline(timeout)
    users, art_pieces = uow[User], uow[ArtPiece]

    distinct_ids = list(dict.fromkeys(ids))
    found = {
        it.id: it for it in await deadline.run(art_pieces.query_by_ids(distinct_ids))
    }
    missing = [it for it in distinct_ids if it not in found]
    if missing:
        raise NotFound(f"Art piece not found: {', '.join(missing)}")

    buyer = await deadline.run(users.get(buyer_id, buyer_id))
    if buyer is None:
        raise NotFound(f"User {buyer_id} not found")

    check_transfers(identity, ids, found)  # type: ignore

    sellers: dict[str, User] = {buyer.id: buyer}
    transfers: list[Transfer] = []
    current: Optional[str] = None
    try:
        for current in ids:
            art_piece = found[current]
            seller_id = art_piece.user_id
            seller = sellers.get(seller_id)
            if seller is None:
                seller = await deadline.run(users.get(seller_id, seller_id))
                if seller is None:
                    raise NotFound(f"Seller {seller_id} not found")

            transfer, sellers[seller_id] = await _move(uow, art_piece, seller, buyer, deadline)
            transfers.append(transfer)
            logger.info(
                "transferred art piece %s: %s -> %s",
                transfer.art_piece_id,
                transfer.old_owner,
                transfer.new_owner,
            )

        current = None
        await replace_reloading(users, buyer, _receiver(transfers), deadline)
    except Exception as e:
        if not transfers:
            raise
        settled = await _settle_buyer(users, buyer_id, transfers, Deadline(timeout))
        await _invalidate(uow, buyer_id, transfers)
        if current is None and settled:
            logger.warning("user %s updated on second attempt", buyer_id)
            return TransferResult(transfers)
        if isinstance(e, PartialFailure):
            e.transferred = list(transfers)
            raise
        if current is None:
            message = f"Art pieces were transferred but user {buyer_id} could not be updated"
        else:
            message = f"Purchase stopped at art piece {current}: {getattr(e, 'message', e)}"
        logger.error("partial purchase by %s: %s", buyer_id, message)
        raise PartialFailure(message, transferred=transfers, failed=current) from e

    await _invalidate(uow, buyer_id, transfers)
    return TransferResult(transfers)


def _receiver(transfers: list[Transfer]) -> Callable[[User], None]:
    received = [it.art_piece_id for it in transfers]

    def receive_all(user: User) -> None:
        for art_piece_id in received:
            user.receive(art_piece_id)

    return receive_all


async def _settle_buyer(
    users: AbstractRepository[User],
    buyer_id: str,
    transfers: list[Transfer],
    deadline: Deadline,
) -> bool:
    """실패 전에 이전이 끝난 작품들만 구매자 문서에 반영합니다."""
    receive_all = _receiver(transfers)
    try:
        buyer = await deadline.run(users.get(buyer_id, buyer_id))
        if buyer is None:
            return False
        receive_all(buyer)
        await replace_reloading(users, buyer, receive_all, deadline)
        return True
    except Exception:
        logger.exception("failed to record transferred art pieces for %s", buyer_id)
        return False


async def _invalidate(uow: AbstractUnitOfWork, buyer_id: str, transfers: list[Transfer]):
    keys = [
        cache.user_art_pieces_key(buyer_id),
        cache.user_cart_key(buyer_id),
        cache.user_liked_items_key(buyer_id),
        cache.ALL_ART_PIECES,
    ]
    for transfer in transfers:
        keys.append(cache.user_art_pieces_key(transfer.old_owner))
        keys.append(cache.art_piece_key(transfer.art_piece_id))
    await cache.invalidate(uow.cache, *keys)
