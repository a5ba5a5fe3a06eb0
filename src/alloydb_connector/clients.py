from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache

from google.cloud import alloydb_v1alpha

# Shared Client Registry (Lazy-loaded and cached)


@lru_cache(maxsize=1)
def get_admin_client() -> alloydb_v1alpha.AlloyDBAdminClient:
    return alloydb_v1alpha.AlloyDBAdminClient()


@lru_cache(maxsize=1)
def get_executor(max_workers: int = 4) -> ThreadPoolExecutor:
    return ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="alloydb-connector"
    )
