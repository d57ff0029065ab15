"""데모 데이터 시드.

저장소의 모든 사용자/작품 문서를 지우고 관리자 한명, 작가 한명과 작가 소유의
작품들을 새로 만듭니다. 관리자는 첫번째 작품을 좋아요/장바구니에 담은 상태입니다.
"""
import asyncio
import uuid

from artmarket import cache
from artmarket.auth import hash_password
from artmarket.core import AbstractUnitOfWork
from artmarket.domain import ArtPiece, User, now_iso
from artmarket.logging import get_logger

logger = get_logger("artmarket.seed")

ART_PIECES = [
    {
        "title": "Mona Lisa",
        "description": "A portrait of a woman",
        "artist": "Leonardo da Vinci",
        "price": 1000000,
        "tags": ["portrait", "renaissance"],
        "year": 1503,
        "url": "http://cdn.britannica.com/24/189624-050-F3C5BAA9/Mona-Lisa-oil-wood-panel-Leonardo-da.jpg",
    },
    {
        "title": "The Starry Night",
        "description": "A night sky filled with swirling stars",
        "artist": "Vincent van Gogh",
        "price": 950000,
        "tags": ["post-impressionism", "night"],
        "year": 1889,
        "url": "https://www.artble.com/imgs/e/d/4/45975/starry_night.jpg",
    },
    {
        "title": "The Persistence of Memory",
        "description": "Melting clocks in a dreamlike landscape",
        "artist": "Salvador Dalí",
        "price": 870000,
        "tags": ["surrealism", "time"],
        "year": 1931,
        "url": "https://upload.wikimedia.org/wikipedia/en/d/dd/The_Persistence_of_Memory.jpg",
    },
    {
        "title": "Guernica",
        "description": "A mural-sized oil painting on canvas against war",
        "artist": "Pablo Picasso",
        "price": 1200000,
        "tags": ["cubism", "war", "black and white"],
        "year": 1937,
        "url": "https://historiek.net/wp-content/uploads-phistor1/2008/12/guernica-picasso.jpg",
    },
    {
        "title": "The Birth of Venus",
        "description": "Goddess Venus emerging from the sea",
        "artist": "Sandro Botticelli",
        "price": 1100000,
        "tags": ["renaissance", "mythology"],
        "year": 1486,
        "url": "https://moaonline.org/wp-content/uploads/2020/10/birth-of-venus-photo-set_Page_1-1000x614.jpg",
    },
    {
        "title": "American Gothic",
        "description": "A farmer and his daughter standing before a house",
        "artist": "Grant Wood",
        "price": 720000,
        "tags": ["realism", "american"],
        "year": 1930,
        "url": "https://upload.wikimedia.org/wikipedia/commons/c/cc/Grant_Wood_-_American_Gothic_-_Google_Art_Project.jpg",
    },
    {
        "title": "Water Lilies",
        "description": "Impressionist depiction of water lilies",
        "artist": "Claude Monet",
        "price": 760000,
        "tags": ["impressionism", "nature"],
        "year": 1916,
        "url": "https://www.artic.edu/iiif/2/3c27b499-af56-f0d5-93b5-a7f2f1ad5813/full/1686,/0/default.jpg",
    },
]


async def purge(uow: AbstractUnitOfWork) -> int:
    """모든 작품과 사용자 문서를 지우고 지운 문서 수를 리턴합니다."""
    count = 0
    for entity_class in (ArtPiece, User):
        repo = uow[entity_class]
        items = await repo.all()
        await asyncio.gather(*[repo.delete(it.id, it.partition_key) for it in items])
        count += len(items)
    return count


def _user(username: str, first_name: str, last_name: str, email: str, role="user") -> User:
    return User(
        id=str(uuid.uuid4()),
        username=username,
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=hash_password(username),
        role=role,
    )


async def seed(uow: AbstractUnitOfWork, publish: bool = True) -> tuple[list[User], list[ArtPiece]]:
    """데모 데이터를 넣습니다. 기존 문서는 모두 지워집니다."""
    purged = await purge(uow)
    logger.info("purged %d documents", purged)

    timestamp = now_iso()
    admin = _user("admin", "admin", "admin", "administration@ucll.be", role="admin")
    artist = _user("Leonardo", "Leonardo", "da Vinci", "leonardo@example.com")

    art_pieces = [
        ArtPiece(
            id=str(uuid.uuid4()),
            folder_name=str(uuid.uuid4()),
            user_id=artist.id,
            publish_on_market=publish,
            created_at=timestamp,
            updated_at=timestamp,
            **dict(data, tags=list(data["tags"])),
        )
        for data in ART_PIECES
    ]
    artist.created_pieces = [it.id for it in art_pieces]

    first = art_pieces[0]
    admin.liked_art_pieces.append(first.id)
    admin.cart.append(first.id)
    first.liked_by.append(admin.id)
    first.in_cart.append(admin.id)

    users = [admin, artist]
    for user in users:
        user.created_at = user.updated_at = timestamp
        await uow[User].create(user)
    for art_piece in art_pieces:
        await uow[ArtPiece].create(art_piece)

    # 지운 문서들의 캐시 항목이 남지 않도록 캐시 전체를 비웁니다.
    await cache.flush(uow.cache)

    logger.info("seeded %d users and %d art pieces", len(users), len(art_pieces))
    return users, art_pieces
