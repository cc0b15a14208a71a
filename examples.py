"""Example usage of stepgraph."""

from pathlib import Path

from stepgraph import (
    LIGHT_THEME,
    CaseStudy,
    Edge,
    ForceConfig,
    Node,
    Step,
    Visualization,
    load_bundled_case_study,
    render_to_svg,
    setup_logging,
)

OUTPUT = Path("output")


def bell_steps_example():
    """One snapshot per step of the bundled Bell Labs case study."""
    vis = Visualization(load_bundled_case_study())

    for step in vis.steps:
        vis.select_step(step.id)
        vis.camera.snap()
        render_to_svg(vis, filename=str(OUTPUT / f"bell_step_{step.id}"))

    print(f"Bell Labs steps saved to {OUTPUT}/bell_step_*.svg")


def physics_example():
    """Let the force simulation settle inside an ellipse, then snapshot it."""
    config = ForceConfig(force_center=True, container="ellipse")
    vis = Visualization(load_bundled_case_study(), strategy="physics", force_config=config)

    for _ in range(500):
        vis.frame()
    vis.camera.fit(p.xy for p in vis.positions.values())
    vis.camera.snap()

    energy = vis.simulation.kinetic_energy()
    render_to_svg(vis, filename=str(OUTPUT / "bell_physics"), theme=LIGHT_THEME)
    print(f"Physics layout saved to bell_physics.svg (kinetic energy {energy:.3f})")


def supply_chain_example():
    """A small hand-built case study with parallel, self-loop and violated edges."""
    study = CaseStudy.from_entities(
        nodes=[
            Node(0, "Manufacturer", "Makes the widgets"),
            Node(1, "Retailer", "Sells the widgets"),
            Node(2, "Factory", "Assembly plant", parent_id=0),
            Node(3, "Line worker", parent_id=2, grandparent_id=0),
            Node(4, "Store", parent_id=1),
        ],
        edges=[
            Edge(0, (0,), (1,), "Purchase order", step_id=0),
            Edge(1, (1,), (0,), "Payment", step_id=0),
            Edge(2, (2,), (2,), "Quality audit", step_id=1),
            Edge(3, (3,), (4,), "Direct shipment", step_id=1, violated=True),
        ],
        steps=[
            Step(0, "Contract signed", "2024-01"),
            Step(1, "First delivery", "2024-03"),
        ],
        name="supply chain",
    )
    study.validate()

    vis = Visualization(study)
    vis.select_step(1)
    vis.camera.snap()
    render_to_svg(vis, filename=str(OUTPUT / "supply_chain"))

    print("Supply chain diagram saved to supply_chain.svg")


if __name__ == "__main__":
    setup_logging()
    OUTPUT.mkdir(exist_ok=True)
    bell_steps_example()
    physics_example()
    supply_chain_example()
