import sys

from surv_tlbx.report import main


sys.exit(main())
