from __future__ import annotations

from batch_loader.parsing.schema import FieldSpec, RecordSchema

# Columns kept from the inbound CSV, in the order they are written to the store.
STUDENT_COLUMNS: tuple[str, ...] = ("student_id", "course", "fname", "lname")

# store key
STUDENT_KEY = "student_id"


STUDENT_SCHEMA = RecordSchema(
    name="student",
    version=1,
    fields=(
        FieldSpec(name="student_id", required=True, min_length=5, max_length=20),
        FieldSpec(name="fname", required=True, min_length=1),
        FieldSpec(name="lname", required=False, min_length=1),
        FieldSpec(name="course", required=True, min_length=5),
    ),
)
