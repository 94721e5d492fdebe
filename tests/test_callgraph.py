from funcfinder import AddressingMode, CallSiteEdge, Confidence, EdgeKind, analyze, build_call_graph
from funcfinder.callgraph import callees, callers, graph_to_dict, owning_candidate
from funcfinder.merger import merge_candidates


def _edge(source, target, kind=EdgeKind.CALL):
    return CallSiteEdge(source_address=source, target_address=target, kind=kind,
                        addressing_mode=AddressingMode.PC_RELATIVE, confidence=Confidence.HIGH)


def test_owning_candidate():
    starts = [0x100, 0x200, 0x300]

    assert owning_candidate(starts, 0x0ff) is None
    assert owning_candidate(starts, 0x100) == 0x100
    assert owning_candidate(starts, 0x1ff) == 0x100
    assert owning_candidate(starts, 0x250) == 0x200
    assert owning_candidate(starts, 0x999) == 0x300
    assert owning_candidate([], 0x100) is None


def test_graph_from_analysis():
    # A calls B; B calls C
    a = b'\x55\x48\x89\xe5\xe8\x02\x00\x00\x00\x5d\xc3'
    b = b'\x55\x48\x89\xe5\xe8\x02\x00\x00\x00\x5d\xc3'
    c = b'\x55\x48\x89\xe5\x5d\xc3'
    result = analyze(a + b + c, 0x1000, 'amd64')

    graph = build_call_graph(result.candidates, result.call_sites)

    assert sorted(graph.nodes) == [0x1000, 0x100b, 0x1016]
    assert callees(graph, 0x1000) == [0x100b]
    assert callees(graph, 0x100b) == [0x1016]
    assert callers(graph, 0x1016) == [0x100b]
    assert callees(graph, 0x1016) == []
    assert graph.nodes[0x1000]['detection_kind'] == 'prologue-only'


def test_repeated_calls_are_counted():
    edges = [_edge(0x104, 0x200), _edge(0x110, 0x200)]
    candidates = merge_candidates([], edges + [_edge(0x0, 0x100)])

    graph = build_call_graph(candidates, edges)

    data = graph.edges[0x100, 0x200]
    assert data['count'] == 2
    assert data['sites'] == [0x104, 0x110]
    assert data['kinds'] == {'call'}


def test_jumps_excluded_by_default():
    edges = [_edge(0x0, 0x100), _edge(0x104, 0x200, EdgeKind.JUMP)]
    candidates = merge_candidates([], edges + [_edge(0x0, 0x200)])

    assert not build_call_graph(candidates, edges).has_edge(0x100, 0x200)
    assert build_call_graph(candidates, edges, include_jumps=True).has_edge(0x100, 0x200)


def test_jump_targets_do_not_own_code():
    # 0x180 is only a jump target; the call at 0x190 still belongs to 0x100
    edges = [_edge(0x0, 0x100), _edge(0x120, 0x180, EdgeKind.JUMP), _edge(0x190, 0x300)]
    candidates = merge_candidates([], edges)

    graph = build_call_graph(candidates, edges)

    assert graph.has_edge(0x100, 0x300)
    assert callees(graph, 0x180) == []


def test_unresolved_and_unowned_edges_are_skipped():
    edges = [_edge(0x50, 0x100), _edge(0x110, None)]
    candidates = merge_candidates([], edges)

    graph = build_call_graph(candidates, edges)

    assert graph.number_of_edges() == 0


def test_unknown_node_queries():
    graph = build_call_graph([], [])

    assert callees(graph, 0x1234) == []
    assert callers(graph, 0x1234) == []


def test_graph_to_dict():
    edges = [_edge(0x0, 0x100), _edge(0x104, 0x200)]
    graph = build_call_graph(merge_candidates([], edges), edges)

    assert graph_to_dict(graph) == {
        'nodes': ['0x100', '0x200'],
        'edges': [{'caller': '0x100', 'callee': '0x200', 'kinds': ['call'], 'count': 1}],
    }
