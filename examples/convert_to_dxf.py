import dxfcodec


drawing = dxfcodec.read("examples/data/sample_r2000.dxf")
print(drawing.saveas("/tmp/sample_r12.dxf", version="R12"))

result = dxfcodec.export_ezdxf(
    drawing,
    "/tmp/sample_out.dxf",
    types="LINE ARC",
    dxf_version="R2010",
)
print(result)
