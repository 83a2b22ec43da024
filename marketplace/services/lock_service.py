import uuid
from contextlib import contextmanager

import redis
from redis.exceptions import RedisError

from marketplace.domain.errors import ConcurrencyConflict
from marketplace.utils.retry import redis_retry
from marketplace.utils.settings import REDIS_URL, RECORD_LOCK_TTL_SECONDS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo - nikt nie wcisnie sie miedzy GET a DEL,
#wiec lock zwolni tylko ten kto go zalozyl


class LockService:
    """
    -blokada rekordu (zamowienie, zamowienie grupowe, punkty) na czas zmiany stanu
    -zwalnianie locka
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None, ttl: int = RECORD_LOCK_TTL_SECONDS):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.ttl = ttl

    @staticmethod
    def _key(kind: str, record_id: str) -> str:
        return f"lock:{kind}:{record_id}"

    @redis_retry()
    def acquire(self, kind: str, record_id: str, owner: str, ttl: int | None = None) -> bool:
        key = self._key(kind, record_id)
        logger.debug(f"Acquire lock {key} for {owner}")
        #SET lock:order:abc "owner" NX EX 30
        return bool(
            self.redis.set(
                name=key,
                value=owner,
                nx=True,  #tylko jesli klucz nie istnieje
                ex=ttl or self.ttl,  #wygasa sam, nie trzeba recznie czyscic
            )
        )

    @redis_retry()
    def release(self, kind: str, record_id: str, owner: str) -> bool:
        key = self._key(kind, record_id)
        logger.debug(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)

    @contextmanager
    def hold(self, kind: str, record_id: str):
        owner = uuid.uuid4().hex
        if not self.acquire(kind, record_id, owner):
            raise ConcurrencyConflict(f"{kind} {record_id} is being modified by another operation")
        try:
            yield owner
        finally:
            try:
                self.release(kind, record_id, owner)
            except RedisError as e:
                #lock i tak wygasnie po ttl
                logger.warning(f"Failed to release lock {kind}:{record_id}: {e}")
