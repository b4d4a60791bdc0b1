"""
Example usage of the cdc_engine with an in-memory DuckDB database as metadata source.
"""
import asyncio
from datetime import datetime

from cdc_engine import CDCEngineApplication
from cdc_engine.config import CDCEngineConfig
from cdc_engine.sinks.arrow_sink import ArrowBatchSink
from cdc_engine.types.change_event import ChangeEvent, Column


def event(operation, position, after=None, before=None, statement=None):
    return ChangeEvent(
        schema="SALES",
        table="ORDERS",
        operation=operation,
        sequence_position=position,
        event_timestamp=datetime.now(),
        before_columns=[Column(k, v) for k, v in (before or {}).items()],
        after_columns=[Column(k, v) for k, v in (after or {}).items()],
        statement=statement,
    )


async def main():
    sink = ArrowBatchSink()
    app = CDCEngineApplication(CDCEngineConfig(split_update_rows=True), sink=sink)
    con = app.backend.con
    con.execute('CREATE SCHEMA "SALES"')
    con.execute('CREATE TABLE "SALES"."ORDERS" ("ID" DECIMAL(10,0), "ITEM" VARCHAR, "PAYLOAD" BLOB)')

    await app.start()
    app.manager.enqueue(event("INSERT", 1, after={"ID": "1", "ITEM": "book", "PAYLOAD": "HEXTORAW('68656c6c6f')"}))
    app.manager.enqueue(event("UPDATE", 2, before={"ID": "1", "ITEM": "book"}, after={"ID": "1", "ITEM": "ebook"}))

    con.execute('ALTER TABLE "SALES"."ORDERS" ADD COLUMN "PLACED" TIMESTAMP')
    app.manager.enqueue(event("DDL", 3, statement='ALTER TABLE "SALES"."ORDERS" ADD COLUMN "PLACED" TIMESTAMP'))
    app.manager.enqueue(event("INSERT", 4, after={
        "ID": "2", "ITEM": "pen", "PAYLOAD": None, "PLACED": "TO_DATE('2024-03-01 10:00:00', 'YYYY-MM-DD HH24:MI:SS')",
    }))

    await app.manager.wait_until_idle(5)
    await app.stop()

    for identity, tables in sink.flush().items():
        print(f"\n{identity}")
        for table in tables:
            for row in table.to_pylist():
                print(row)

    print("\nStatus:", app.manager.get_all_status())
    print("Positions:", app.manager.get_positions())
    app.close()


if __name__ == "__main__":
    asyncio.run(main())
