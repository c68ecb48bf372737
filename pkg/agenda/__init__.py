# Agenda engine: inline task capture, day-bucketed agenda and manual ordering
#
# Components:
#   schema.py        - Data model (Task, Category, DaySection, CompletionNotice)
#   extractor.py     - Date / weekday token extraction from typed titles
#   ordering.py      - sortOrder assignment and renumbering
#   agenda.py        - Rolling N-day agenda builder and search matching
#   category_list.py - Flat single-category list projection
#   scheduling.py    - Drag-to-reschedule between day buckets
#   mode.py          - View mode state machine (agenda vs. category list)
#   deferred.py      - Per-key debouncer and deferred search value
#   store.py         - Persistence gateway (memory, SQLite cache, remote, synced)
#   config.py        - YAML config, storage keys, logging setup
#   seed.py          - Default categories and sample tasks
#   planner.py       - AgendaPlanner: owns state and wires everything together
