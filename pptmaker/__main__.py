from pptmaker.server import main

main()
