"""Primary and foreign key column type for contests, draws and participations."""

from sqlalchemy import BigInteger, Integer

# BigInteger on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")
