import eziges


result = eziges.to_dxf(
    "examples/data/bracket.igs",
    "/tmp/bracket_out.dxf",
    types="LINE ARC",
    dxf_version="R2010",
)
print(result)
