# backend/yoga_studio/services/reconciler.py
"""
Turns the raw record arrays of the document store into an IndexedModel.

- null / non-object entries are dropped, every kept record gets its array position as id
- class instances dated before "today" are dropped (YYYYMMDD integer comparison)
- class types are embedded in classes, teachers in instances
- each class carries its future instances sorted by date
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from operator import itemgetter
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError

from ..date_utils import date_key, today_key
from ..schemas import ClassDefinition, ClassInstance, ClassTypeInfo, RecordModel, TeacherInfo

logger = logging.getLogger(__name__)

UNKNOWN_CLASS_TYPE = ClassTypeInfo(name="Unknown Type", description="")
UNKNOWN_TEACHER = TeacherInfo(name="Unknown Teacher", basic_info="")

# keys the reconciler computes itself; never trusted from the store
_DERIVED_CLASS_KEYS = ("id", "classType", "class_type", "instances")
_DERIVED_INSTANCE_KEYS = ("id", "teacher")

R = TypeVar("R", bound=RecordModel)


@dataclass(frozen=True)
class IndexedModel:
    """Immutable snapshot produced by one reconciliation pass."""
    class_list: Tuple[ClassDefinition, ...]
    class_by_id: Mapping[int, ClassDefinition]
    instance_by_id: Mapping[int, ClassInstance]       # future instances only
    teacher_by_id: Mapping[int, TeacherInfo]
    class_type_by_id: Mapping[int, ClassTypeInfo]
    today: date
    version: int = 0

    @classmethod
    def empty(cls, today: date) -> "IndexedModel":
        return cls((), MappingProxyType({}), MappingProxyType({}),
                   MappingProxyType({}), MappingProxyType({}), today)


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------
def _slots(records: Any, collection: str) -> Iterator[Tuple[int, Mapping]]:
    """Yield (position, record) for every non-null record of a raw array."""
    if records is None:
        return
    if isinstance(records, Mapping):
        # sparse arrays often come back as {"0": {...}, "3": {...}}
        items = []
        for key, record in records.items():
            try:
                position = int(key)
            except (TypeError, ValueError):
                logger.warning("Skipping %s entry with non-numeric key %r", collection, key)
                continue
            if position < 0:
                logger.warning("Skipping %s entry with negative key %r", collection, key)
                continue
            items.append((position, record))
        items.sort(key=itemgetter(0))
    elif isinstance(records, (list, tuple)):
        items = enumerate(records)
    else:
        logger.warning("Ignoring %s: expected an array, got %s", collection, type(records).__name__)
        return

    for position, record in items:
        if isinstance(record, Mapping):
            yield position, record


def _build(model: Type[R], position: int, fields: Dict[str, Any], collection: str) -> Optional[R]:
    try:
        return model.model_validate({**fields, "id": position})
    except ValidationError as e:
        logger.warning(
            "Dropping %s[%d]: %d invalid field(s): %s",
            collection, position, e.error_count(),
            ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors()),
        )
        return None


def _normalize_days(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [d for d in value if isinstance(d, str)]


def _instance_sort_key(instance: ClassInstance) -> int:
    return date_key(instance.date) or 0


# ---------------------------------------------------------
# Steps
# ---------------------------------------------------------
def _lookup_records(records: Any, model: Type[R], collection: str) -> Dict[int, R]:
    built = {}
    for position, record in _slots(records, collection):
        obj = _build(model, position, dict(record), collection)
        if obj is not None:
            built[position] = obj
    return built


def _future_instances(records: Any, today_num: int, teachers: Mapping[int, TeacherInfo]) -> Dict[int, ClassInstance]:
    """Instances dated today or later, each with its teacher resolved."""
    future = {}
    for position, record in _slots(records, "classInstances"):
        raw_date = record.get("date")
        if not raw_date:
            logger.debug("Dropping classInstances[%d]: no date", position)
            continue

        inst_num = date_key(raw_date)
        if inst_num is None:
            logger.warning("Dropping classInstances[%d]: could not parse date %r", position, raw_date)
            continue
        if inst_num < today_num:
            continue

        fields = {k: v for k, v in record.items() if k not in _DERIVED_INSTANCE_KEYS}
        instance = _build(ClassInstance, position, fields, "classInstances")
        if instance is None:
            continue
        teacher = teachers.get(instance.teacher_id, UNKNOWN_TEACHER)
        future[position] = instance.model_copy(update={"teacher": teacher})
    return future


def _classes(records: Any, class_types: Mapping[int, ClassTypeInfo],
             instances_by_class: Mapping[int, List[ClassInstance]]) -> List[ClassDefinition]:
    classes = []
    for position, record in _slots(records, "classes"):
        fields = {k: v for k, v in record.items() if k not in _DERIVED_CLASS_KEYS}
        fields["daysOfWeek"] = _normalize_days(record.get("daysOfWeek"))

        cls = _build(ClassDefinition, position, fields, "classes")
        if cls is None:
            continue

        instances = sorted(instances_by_class.get(cls.id, ()), key=_instance_sort_key)
        classes.append(cls.model_copy(update={
            "class_type": class_types.get(cls.class_type_id, UNKNOWN_CLASS_TYPE),
            "instances": tuple(instances),
        }))
    return classes


# ---------------------------------------------------------
# MAIN FUNCTION
# ---------------------------------------------------------
def reconcile(raw: Optional[Mapping[str, Any]], today: date) -> IndexedModel:
    """
    Build an IndexedModel from a raw bundle
    ({classes, classInstances, classTypes, teachers, bookings}).

    Missing arrays count as empty, dangling references resolve to sentinels.
    Never raises on malformed records.
    """
    if not isinstance(raw, Mapping):
        logger.warning("Raw bundle is %s, reconciling an empty catalog", type(raw).__name__)
        raw = {}

    today_num = today_key(today)

    class_types = _lookup_records(raw.get("classTypes"), ClassTypeInfo, "classTypes")
    teachers = _lookup_records(raw.get("teachers"), TeacherInfo, "teachers")
    instances = _future_instances(raw.get("classInstances"), today_num, teachers)

    instances_by_class = defaultdict(list)
    for instance in instances.values():
        instances_by_class[instance.class_id].append(instance)

    classes = _classes(raw.get("classes"), class_types, instances_by_class)

    logger.info(
        "Reconciled %d classes, %d future instances, %d teachers, %d class types (today=%d)",
        len(classes), len(instances), len(teachers), len(class_types), today_num,
    )

    return IndexedModel(
        class_list=tuple(classes),
        class_by_id=MappingProxyType({c.id: c for c in classes}),
        instance_by_id=MappingProxyType(instances),
        teacher_by_id=MappingProxyType(teachers),
        class_type_by_id=MappingProxyType(class_types),
        today=today,
    )
