"""Input/Output operations for apkwatch.

This module provides the streamed artifact download used when a new version
is detected.

Modules:

download : module
    HTTP(S) file download with truncation checks and partial-file cleanup.

Public API:

download_file : function
    Download a URL to a named file inside a directory.
HttpArtifactFetcher : class
    Fetcher object wrapping download_file for the pipeline.
make_session : function
    requests.Session with apkwatch's default headers.

Example:
    from pathlib import Path
    from apkwatch.io import download_file

    file_path = download_file(
        url="https://vendor.example/api/download",
        dest_dir=Path("./downloads"),
        filename="temp_pgsharp_1700000000000_0.apk",
    )
    print(f"Downloaded to {file_path}")

"""

from .download import HttpArtifactFetcher, download_file, make_session

__all__ = ["download_file", "HttpArtifactFetcher", "make_session"]
