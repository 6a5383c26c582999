"""Asset catalog backed by the `attachments` collection."""

from typing import Optional

from pymongo.database import Database

__all__ = ["MongoAssetCatalog"]


class MongoAssetCatalog:
    """
    Look up attachments `{_id: int, file: "<upload-relative path>"}`.

    Used by the protected field policy to map an identifier to its file and
    a migrated file back to its own identifier.
    """

    COLLECTION = "attachments"

    def __init__(self, db: Database) -> None:
        self.db = db

    def file_for(self, asset_id: int) -> Optional[str]:
        doc = self.db[self.COLLECTION].find_one({"_id": asset_id}, projection={"file": 1})
        if not doc or not isinstance(doc.get("file"), str):
            return None
        return doc["file"]

    def id_for(self, relative_file: str) -> Optional[int]:
        doc = self.db[self.COLLECTION].find_one(
            {"file": relative_file.lstrip("/")}, projection={"_id": 1}
        )
        if not doc:
            return None
        return int(doc["_id"])
