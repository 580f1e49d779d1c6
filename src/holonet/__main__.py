from holonet.cli import main

main()
