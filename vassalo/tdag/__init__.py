"""Named test events, topological ordering and ASCII schemes of DAGs."""