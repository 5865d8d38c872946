import argparse
import time

from versioned_store import Store, attribute_schema


class Counter:
    def __init__(self):
        self.id = None
        self.count = 0


def run_benchmark(num_entities: int, num_steps: int):
    store = Store({"models": {"counter": attribute_schema(Counter, ["count"])}})

    start_create = time.perf_counter()
    for i in range(num_entities):
        store.create("counter", {"id": f"c{i}", "count": 0})
    create_time = time.perf_counter() - start_create

    store.history.commit()
    start_commit = time.perf_counter()
    for step in range(num_steps):
        store.create("counter", {"id": f"c{step % num_entities}", "count": step})
        store.history.commit()
    commit_time = time.perf_counter() - start_commit

    start_undo = time.perf_counter()
    while store.history.undo():
        pass
    undo_time = time.perf_counter() - start_undo

    start_sandbox = time.perf_counter()
    store.sandbox(lambda ctx: [store.delete("counter", f"c{i}") for i in range(num_entities)])
    sandbox_time = time.perf_counter() - start_sandbox

    print(f"\n--- Results for {num_entities} entities, {num_steps} history steps ---")
    print(f"Create:  {create_time:.4f}s ({num_entities / create_time:,.0f} creates/s)")
    print(f"Commit:  {commit_time:.4f}s ({num_steps / commit_time:,.0f} mutate+commit/s)")
    print(f"Undo:    {undo_time:.4f}s ({num_steps / undo_time:,.0f} undos/s)")
    print(f"Sandbox: {sandbox_time:.4f}s (delete everything, then roll back)")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--entities", type=int, default=1000)
    parser.add_argument("--steps", type=int, default=200)
    args = parser.parse_args()
    run_benchmark(args.entities, args.steps)
