from redsync.interfaces.cli import main

main()
