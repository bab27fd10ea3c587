"""
BOM Domain - Bill of Materials (hierarchical parts list).

This domain handles the hierarchical structure of products:
- Depth-indented rows are built into a tree keyed by location (A/B/C)
- Two trees are compared into a change set with ancestor impact
- A tree is audited for orphaned parts, missing sourcing, level gaps,
  diverging reused sub-assemblies and circular assemblies
"""
