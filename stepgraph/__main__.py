from stepgraph.cli import main

main()
