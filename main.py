import argparse
import asyncio
import logging

from pydantic import BaseModel

from versioned_store import Store, pydantic_schema


class Task(BaseModel):
    id: str
    title: str
    done: bool = False


async def watch_changes(store: Store, received: list):
    async for change in store.watch():
        received.append(change)
        print(f"  change v{change.version}: {change.reason} {change.changes}")


def show(store: Store, label: str):
    tasks = store["task"].get_all()
    summary = ", ".join(f"{t.id}{'*' if t.done else ''}" for t in tasks) or "(empty)"
    print(f"{label}: {summary}")


async def demo(num_tasks: int):
    store = Store({"schemaVersion": 1, "models": {"task": pydantic_schema(Task)}})
    received = []
    watcher = asyncio.create_task(watch_changes(store, received))
    await asyncio.sleep(0)

    store.history.commit()
    for i in range(num_tasks):
        store.create("task", {"id": f"t{i}", "title": f"Task {i}"})
        store.history.commit()
        await asyncio.sleep(0)
    show(store, "After creating")

    # Same id again: the existing task is updated, not duplicated.
    store.create("task", {"id": "t0", "done": True})
    store.history.commit()
    await asyncio.sleep(0)
    show(store, "After completing t0")

    def preview(ctx):
        for task in store["task"].get_all():
            store.create("task", {"id": task.id, "done": True})
        show(store, "Inside sandbox")

    store.sandbox(preview)
    show(store, "After discarded sandbox")

    store.history.undo()
    await asyncio.sleep(0)
    show(store, "After undo")
    store.history.redo()
    await asyncio.sleep(0)
    show(store, "After redo")

    watcher.cancel()
    try:
        await watcher
    except asyncio.CancelledError:
        pass
    print(f"{len(received)} notifications, metrics: {store.metrics()}")


async def main():
    parser = argparse.ArgumentParser(description="Walk through the store's undo/redo and sandbox API.")
    parser.add_argument("--tasks", type=int, default=3)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    await demo(args.tasks)


if __name__ == "__main__":
    asyncio.run(main())
