"""
Report printing utilities for slices
"""


class ReportPrinter:
    """Print repository and slice summaries for the command line"""

    @staticmethod
    def print_summary(stats):
        """Print a summary of the repository scan"""
        print("\n" + "="*70)
        print("REPOSITORY SUMMARY")
        print("="*70)
        print(f"Total Files: {stats['total_files']}")
        print(f"Files With Syntax Errors: {stats['files_with_errors']}")
        print(f"Total Classes: {stats['total_classes']}")
        print(f"Total Functions: {stats['total_functions']}")
        print(f"Total Methods: {stats['total_methods']}")
        print(f"Total Constants: {stats['total_constants']}")
        print(f"Resolved Call Edges: {stats['total_call_edges']}")

        print("\nTop 10 Files by Function Count:")
        sorted_files = sorted(
            stats['files'].items(),
            key=lambda x: x[1]['functions'] + x[1]['methods'],
            reverse=True
        )[:10]

        for filepath, counts in sorted_files:
            total = counts['functions'] + counts['methods']
            print(f"  {filepath}:")
            print(f"    {total} functions/methods ({counts['classes']} classes, {counts['constants']} constants)")

    @staticmethod
    def print_slice_summary(result):
        """Print how a slice was built and what it contains"""
        meta = result.slice.metadata

        print("\n" + "="*70)
        print(f"SLICE: {result.graph.root_id}")
        print("="*70)
        print(f"Compilation State: {result.state.value}")
        print(f"Engine: {result.engine.value}")
        if result.engine.value == 'inferred':
            status = 'converged' if meta.converged else 'not converged'
            print(f"Refinement: {meta.iterations} rounds ({status}, {meta.unresolved_hints} open hints)")
            if result.build.unresolved_names:
                print(f"Unresolved Names: {', '.join(result.build.unresolved_names[:10])}")
        if meta.timeouts:
            print(f"Timeouts: {meta.timeouts}")

        pct = int(meta.consumed / meta.capacity * 100) if meta.capacity else 100
        print(f"\nTokens: {meta.consumed}/{meta.capacity} ({pct}%)")
        print(f"Entries: {len(result.slice)} | Demoted: {meta.demoted} | Dropped: {meta.dropped} | Unvisited: {meta.unvisited}")
        print(f"Pruned: {meta.pruned_edges} edges, {meta.pruned_nodes} nodes")

        print("\nEntries:")
        for entry in result.slice.entries:
            print(f"  • [{entry.level.marker:9}] {entry.node.id} (distance {entry.distance}, {entry.tokens} tokens)")

        if result.equivalence is not None:
            eq = result.equivalence
            print(f"\nEquivalence: {eq.status.value} (confidence {eq.confidence:.2f})")
            if eq.reason:
                print(f"  {eq.reason}")
            for pair in eq.pairs:
                print(f"  {pair.outcome.value:10} {pair.original}  ->  {pair.modified}")
