import logging
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from utils.errors import PersistenceFailure, ValidationFailed
from utils.gateway import OrderBy, PersistenceGateway, Table

logger = logging.getLogger(__name__)


def parse_object_id(value: str, name: str = "id") -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationFailed(f"Invalid {name}")


def serialize_doc(doc: dict) -> dict:
    if not doc:
        return doc

    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    for k, v in doc.items():
        if isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def to_mongo_filter(filter: dict | None) -> dict:
    query = dict(filter or {})
    if "id" in query:
        value = query.pop("id")
        if isinstance(value, dict):
            query["_id"] = {op: [parse_object_id(v) for v in operand] if isinstance(operand, list)
                            else parse_object_id(operand) for op, operand in value.items()}
        else:
            query["_id"] = parse_object_id(value)
    return query


class MongoTable(Table):
    def __init__(self, collection):
        self.collection = collection
        self.name = collection.name

    async def select(self, filter: dict | None = None, order_by: OrderBy = None) -> list[dict]:
        try:
            cursor = self.collection.find(to_mongo_filter(filter))
            if order_by:
                cursor = cursor.sort(list(order_by))
            return [serialize_doc(doc) async for doc in cursor]
        except PyMongoError as e:
            logger.exception("MONGO_SELECT_ERROR table=%s", self.name)
            raise PersistenceFailure(f"Could not read {self.name}") from e

    async def insert(self, row: dict) -> str:
        doc = {k: v for k, v in row.items() if k != "id"}
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            logger.exception("MONGO_INSERT_ERROR table=%s", self.name)
            raise PersistenceFailure(f"Could not save to {self.name}") from e
        return str(result.inserted_id)

    async def update(self, id: str, partial: dict) -> None:
        changes = {k: v for k, v in partial.items() if k != "id"}
        try:
            await self.collection.update_one(
                {"_id": parse_object_id(id)},
                {"$set": changes},
            )
        except PyMongoError as e:
            logger.exception("MONGO_UPDATE_ERROR table=%s id=%s", self.name, id)
            raise PersistenceFailure(f"Could not update {self.name}") from e

    async def delete(self, id: str) -> None:
        try:
            await self.collection.delete_one({"_id": parse_object_id(id)})
        except PyMongoError as e:
            logger.exception("MONGO_DELETE_ERROR table=%s id=%s", self.name, id)
            raise PersistenceFailure(f"Could not delete from {self.name}") from e


class MongoGateway(PersistenceGateway):
    def __init__(self, db):
        self.db = db

    def table(self, name: str) -> Table:
        return MongoTable(self.db[name])
