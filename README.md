# cadsim

Building blocks for a cycle-driven multiprocessor architecture simulator.
Components derive from `cadsim.interfaces.SimComponent`: they advance one
cycle per `tick()`, report at `finish(out)` and release what they hold at
`destroy()`.

## Modules

- `cadsim.interfaces`: shared types: `OpType`, `BusReqType`, `CacheAction`,
  `BranchModel`, `DebugEnv`, `TraceOp` and the `SimComponent` base class.
- `cadsim.trace`: `TraceReader` hands out `TraceOp` records with
  `next_op(processor_num)`. It reads a single text trace file, a directory
  holding one `p<N>.trace` file per processor, a task graph file (a path
  ending in `taskgraph`), or standard input when no `-t` option is given.
  `parse_trace_line` decodes one line and raises `TraceError` on a
  malformed one.
- `cadsim.taskid`, `cadsim.action`, `cadsim.task`: the task-graph data model:
  `TaskId` (context in the high 32 bits, sequence in the low 32), `ContextId`,
  `SeqId`, the 64-bit packed `Action` with its `ActionType`, and `Task`
  holding actions, successors and predecessors.
- `cadsim.taskio`: `read_task` and `write_task` for zlib-compressed task
  records; `TaskFormatError` for malformed data.
- `cadsim.taskgraphinfo`: `TaskGraphInfo`, per-basic-block metadata
  (`BasicBlockInfo`), readable from and writable to a binary stream.
- `cadsim.taskgraph`: `TaskGraph` for sequential and by-id access to the tasks
  of a task graph file, and `write_task_graph` to produce one.
- `cadsim.taskgraph_api`: `TaskGraphOpSource` turns the basic-block tasks of a
  task graph into a per-context stream of load and store `TraceOp`s.
- `cadsim.backend`: `Backend`, an abstract analysis, and
  `SimpleBackendWrapper`, which feeds it every task of a task graph file.
- `cadsim.cache`: `SimpleCache` asks a coherence component for permission;
  granted requests complete on the next `tick()`, the rest wait until the
  coherence component reports `CacheAction.DATA_RECV` for them.
- `cadsim.interconnect`: `Interconnect`, a single bus serving one request at a
  time, with per-processor queues, round-robin arbitration, snooping by the
  other processors and cache-to-cache transfers.
- `cadsim.splay`: `SplayTree`, an integer-keyed splay tree that counts key
  comparisons.

## Reading a trace

```python
from cadsim.trace import TraceReader

reader = TraceReader(["-t", "program.trace"], processor_count=1)
while (op := reader.next_op(0)) is not None:
    print(op.op.name, hex(op.mem_address))
reader.destroy()
```

Each trace line starts with a letter:

- `A <pc> <dst>, <src>, <src>` and `X ...` in the same shape: short and long
  ALU operations;
- `B <pc> <next-pc> [reg]`: a branch;
- `L <addr>,<size> [reg]` and `S <addr>,<size> [reg]`: a load and a store.

Addresses are hexadecimal. An empty line, or one starting with whitespace,
ends the trace.

## Walking a task graph

```python
from cadsim.taskgraph import TaskGraph

with TaskGraph.from_file("program.taskgraph") as graph:
    print(graph.num_tasks(), "tasks in", graph.num_contexts(), "contexts")
    for task in graph:
        print(task.summary())
```

`write_task_graph(stream, tasks, info, roi_start, roi_end)` writes a graph
that `TaskGraph` can read back.

## What the package does not do

There is no command-line program and no engine that wires components together
and drives their ticks. There are no coherence, memory, processor or branch
predictor components. `SimpleCache` and `Interconnect` work with objects the
caller supplies:

- the coherence component given to `SimpleCache` needs
  `register_cache_interface(callback)`, `perm_req(is_read, addr, processor_num)`
  and `tick()`;
- the memory component given to `Interconnect` needs
  `register_interconnect(interconnect)`, `bus_req(addr, proc_num, callback)`
  (returning the delay in cycles), `tick()`, `finish(out)` and `destroy()`;
- the coherence component registered with
  `Interconnect.register_coherence` needs `bus_req(req_type, addr, proc_num)`.

## Running the tests

```
pip install -e .[test]
pytest
```