from gtdtree.main import main

main()
