"""GitHub fetch strategies, in default priority order.

    1. ArchiveFetchStrategy      -- one tarball GET per tag, contents preloaded.
    2. GitTreeFetchStrategy      -- one recursive tree listing, lazy reads.
    3. ContentsApiFetchStrategy  -- directory walk, lazy reads, any ref.
"""

from libdocs.providers.fetch.archive_strategy import ArchiveFetchStrategy
from libdocs.providers.fetch.contents_api_strategy import ContentsApiFetchStrategy
from libdocs.providers.fetch.git_tree_strategy import GitTreeFetchStrategy

__all__ = ["ArchiveFetchStrategy", "ContentsApiFetchStrategy", "GitTreeFetchStrategy"]
