import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, OperationFailure

from fittrack.config import Settings
from fittrack.errors import InvalidArgument, NotFound
from fittrack.models.domain import WorkoutSession, WorkoutTemplate, naive_utc, parse_record
from fittrack.models.enums import WorkoutKind
from fittrack.models.nutrition import NutritionDay

logger = logging.getLogger(__name__)

WorkoutRecord = Union[WorkoutTemplate, WorkoutSession]


def to_object_id(value: Union[str, ObjectId]) -> ObjectId:
    """Parses a record identifier, rejecting malformed ones."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise InvalidArgument(f"Malformed identifier: {value!r}")


class MongoService:
    """Handles all MongoDB operations for workouts and nutrition days."""

    def __init__(self, settings: Settings, client: Optional[MongoClient] = None) -> None:
        """Initialize MongoDB client and collections.

        A ready client may be injected; otherwise one is built from settings
        and the connection is checked.
        """
        self.settings = settings
        try:
            if client is None:
                client = MongoClient(settings.mongo.uri, serverSelectionTimeoutMS=5000)
                client.admin.command("ping")
            self.client = client
            self.db = self.client[settings.mongo.database]
            self.workouts: Collection = self.db[settings.mongo.workouts_collection]
            self.nutrition: Collection = self.db[settings.mongo.nutrition_collection]
            logger.info("Connected to MongoDB at %s", settings.mongo.host)
        except ConnectionFailure as exc:
            logger.critical("Could not connect to MongoDB.", exc_info=True)
            raise exc

    def close(self) -> None:
        self.client.close()
        logger.info("MongoDB connection closed.")

    # ------------------------------
    # Workout CRUD
    # ------------------------------
    def insert_workout(self, record: WorkoutRecord) -> WorkoutRecord:
        """Insert a template or session and return it with its new id."""
        doc = record.to_document()
        doc.pop("_id", None)
        try:
            logger.debug("Saving %s: %s", record.kind, doc)
            result = self.workouts.insert_one(doc)
        except OperationFailure as exc:
            logger.error("Failed to save %s for owner %s: %s", record.kind, record.owner_id, exc, exc_info=True)
            raise
        logger.info("Saved %s %s for owner %s", record.kind, result.inserted_id, record.owner_id)
        return record.model_copy(update={"mongo_id": result.inserted_id})

    def get_workout(self, workout_id: Union[str, ObjectId]) -> Optional[WorkoutRecord]:
        """Fetch a template or session by its ObjectId."""
        oid = to_object_id(workout_id)
        logger.debug("Fetching workout by id=%s", oid)
        doc = self.workouts.find_one({"_id": oid})
        if doc is None:
            return None
        return parse_record(doc)

    def delete_workout(self, workout_id: Union[str, ObjectId], extra: Optional[Dict[str, Any]] = None) -> bool:
        """Delete a document by id, optionally constrained by extra filter fields."""
        query = {"_id": to_object_id(workout_id), **(extra or {})}
        result = self.workouts.delete_one(query)
        logger.info("Delete workout query=%s deleted=%d", query, result.deleted_count)
        return result.deleted_count > 0

    def set_completion_flag(self, session_id: ObjectId, exercise_index: int, set_index: int,
            completed: bool) -> Optional[WorkoutSession]:
        """Write one set's completion flag and return the updated session."""
        return self.update_set_fields(session_id, exercise_index, set_index, {"completed": completed})

    def update_set_fields(self, session_id: ObjectId, exercise_index: int, set_index: int,
            fields: Dict[str, Any]) -> Optional[WorkoutSession]:
        """Write fields of one set of a session and return the updated session."""
        prefix = f"exercises.{exercise_index}.sets.{set_index}"
        update = {f"{prefix}.{name}": value for name, value in fields.items()}
        doc = self.workouts.find_one_and_update(
            {"_id": session_id, "kind": WorkoutKind.SESSION.value},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        logger.debug("Set %s on session %s", update, session_id)
        return parse_record(doc) if doc is not None else None

    def mark_completed(self, session_id: ObjectId, rating: int, comment: str,
            completed_at: datetime) -> Optional[WorkoutSession]:
        """Stamp completion fields on a session in a single document update."""
        doc = self.workouts.find_one_and_update(
            {"_id": session_id, "kind": WorkoutKind.SESSION.value},
            {"$set": {
                "is_completed": True,
                "completed_at": naive_utc(completed_at),
                "rating": rating,
                "comment": comment,
            }},
            return_document=ReturnDocument.AFTER,
        )
        return parse_record(doc) if doc is not None else None

    # ------------------------------
    # Query Operations
    # ------------------------------
    def query_templates(self, owner_id: str) -> List[WorkoutTemplate]:
        """Return an owner's templates, newest first."""
        query = {"owner_id": owner_id, "kind": WorkoutKind.TEMPLATE.value}
        return self._execute_query(query, sort_field="created_at")

    def query_sessions(self, owner_id: str, completed_only: bool = False,
            since: Optional[datetime] = None, limit: int = 0) -> List[WorkoutSession]:
        """Return an owner's sessions, most recently completed first."""
        query: Dict[str, Any] = {"owner_id": owner_id, "kind": WorkoutKind.SESSION.value}
        if completed_only:
            query["is_completed"] = True
        if since is not None:
            since = naive_utc(since)
            query["$or"] = [
                {"completed_at": {"$gte": since}},
                {"completed_at": None, "created_at": {"$gte": since}},
            ]
        return self._execute_query(query, sort_field="completed_at", limit=limit)

    def query_all_sessions(self, owner_id: Optional[str] = None,
            completed_only: bool = False) -> List[WorkoutSession]:
        query: Dict[str, Any] = {"kind": WorkoutKind.SESSION.value}
        if owner_id is not None:
            query["owner_id"] = owner_id
        if completed_only:
            query["is_completed"] = True
        return self._execute_query(query, sort_field="created_at")

    def count_completed_sessions(self, owner_id: str) -> int:
        return self.workouts.count_documents(
            {"owner_id": owner_id, "kind": WorkoutKind.SESSION.value, "is_completed": True}
        )

    def last_completed_session(self, owner_id: str) -> Optional[WorkoutSession]:
        """The owner's most recently completed session, if any."""
        doc = self.workouts.find_one(
            {"owner_id": owner_id, "kind": WorkoutKind.SESSION.value, "is_completed": True},
            sort=[("completed_at", DESCENDING)],
        )
        return parse_record(doc) if doc is not None else None

    def count_nutrition_days(self, owner_id: str) -> int:
        return self.nutrition.count_documents({"owner_id": owner_id})

    # ------------------------------
    # Nutrition
    # ------------------------------
    def get_nutrition_day(self, owner_id: str, start: datetime, end: datetime) -> NutritionDay:
        """Return the nutrition log of an owner stored within [start, end)."""
        query = {"owner_id": owner_id, "date": {"$gte": naive_utc(start), "$lt": naive_utc(end)}}
        logger.debug("Fetching nutrition day: %s", query)
        doc = self.nutrition.find_one(query)
        if doc is None:
            raise NotFound(f"No nutrition log for {owner_id} between {start} and {end}")
        return NutritionDay(**doc)

    def save_nutrition_day(self, day: NutritionDay) -> NutritionDay:
        doc = day.model_dump(by_alias=True, exclude_none=True)
        doc["date"] = naive_utc(day.date)
        result = self.nutrition.insert_one(doc)
        return day.model_copy(update={"mongo_id": result.inserted_id})

    # ------------------------------
    # Internal Helpers
    # ------------------------------
    def _execute_query(self, query: Dict[str, Any], sort_field: str, limit: int = 0) -> List[Any]:
        """Execute a Mongo query and return workout models."""
        logger.debug("Executing Mongo query: %s", query)
        try:
            sort = [(sort_field, DESCENDING)]
            if sort_field != "created_at":
                sort.append(("created_at", DESCENDING))
            cursor = self.workouts.find(query).sort(sort)
            if limit:
                cursor = cursor.limit(limit)
            results = [parse_record(doc) for doc in cursor]
        except OperationFailure as exc:
            logger.error("Failed to query workouts %s: %s", query, exc, exc_info=True)
            raise
        logger.debug("Query returned %d workouts", len(results))
        return results

