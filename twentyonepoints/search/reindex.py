from twentyonepoints.core.logging import get_logger
from twentyonepoints.data.pagination import Pageable

logger = get_logger(__name__)

REINDEX_BATCH_SIZE = 100


async def reindex(repository, search_repository, batch_size: int = REINDEX_BATCH_SIZE) -> int:
    """
    Rebuild a search index from the store of record.

    Clears the index first, then copies every stored entity across in
    batches. Returns the number of entities indexed.
    """
    entity_name = repository.entity_metadata.name
    await search_repository.delete_all()

    indexed = 0
    pageable = Pageable(page=0, size=batch_size)
    while True:
        page = await repository.find_all(pageable)
        await search_repository.save_all(page.content)
        indexed += len(page.content)
        if not page.has_next:
            break
        pageable = pageable.next()

    logger.info(f"Reindexed {indexed} {entity_name} entities")
    return indexed
