from rantboard.cli import main

main()
