from dockwatch.main import main

main()
