import eziges


def main() -> None:
    doc = eziges.read("examples/data/bracket.igs")
    msp = doc.modelspace()

    print(f"unit: {doc.header.unit}")
    for entity in msp.query("LINE ARC POINT TEXT"):
        print(entity.dxftype, entity.handle, entity.to_points())
    for diagnostic in doc.diagnostics:
        print("diagnostic:", diagnostic)

    ax = msp.plot(show=False, title="Bracket")
    ax.figure.savefig("bracket.png", dpi=150)
    print("saved: bracket.png")


if __name__ == "__main__":
    main()
