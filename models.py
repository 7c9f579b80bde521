from sqlalchemy import (
    Column,
    Index,
    Integer,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

LOCATION_TABLE = "location"


class PhoneLocation(Base):
    __tablename__ = LOCATION_TABLE

    # Column names are the boundary field names; "_id" keeps the rowid alias.
    id = Column("_id", Integer, primary_key=True)

    number = Column(Text, unique=True)
    location = Column(Text)

    phone_type = Column(Integer)
    engine_type = Column(Integer)

    user_mark = Column(Text)

    # epoch milliseconds
    update_time = Column(Integer)


location_table = PhoneLocation.__table__

# Non-unique lookup index; uniqueness comes from the table constraint above.
number_index = Index("number", location_table.c.number)

# boundary name -> Column
COLUMNS = {c.name: c for c in location_table.columns}

ID = "_id"
NUMBER = "number"
LOCATION = "location"
PHONE_TYPE = "phone_type"
ENGINE_TYPE = "engine_type"
USER_MARK = "user_mark"
UPDATE_TIME = "update_time"

DEFAULT_SORT_ORDER = "update_time ASC"
